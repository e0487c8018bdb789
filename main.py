"""
Main entrypoint for the campsite search and reviews API.

Usage:
    Run directly (`python main.py`) to create the tables and serve on port 8000,
    or point any ASGI server at `src.api.app:app`.
"""
import os

import uvicorn

from src.db.database import create_tables


def main():
    """
    Create database tables and start the API server.
    """
    try:
        create_tables()

        host = os.getenv("HOST", "0.0.0.0")
        port = int(os.getenv("PORT", "8000"))
        print(f"Starting Campsite API on {host}:{port}...")
        uvicorn.run("src.api.app:app", host=host, port=port)
        return 0
    except Exception as e:
        print(f"An error occurred in the main function: {str(e)}")
        return 1


if __name__ == "__main__":
    exit_code = main()
    print(f"Exiting with code {exit_code}")
