"""
Reviews Module
-------------
Review submission, listing, editing, deletion and flagging. Every write goes
through the coordinator so the campsite's average rating and review count are
recomputed in the same transaction as the review change.
"""
