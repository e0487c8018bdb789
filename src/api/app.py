from fastapi import FastAPI, HTTPException, Depends, Request, Query, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
import logging
from typing import Optional, List

from src import config
from src.db.database import get_db
from src.errors import CampsiteError
from src.identity.directory import UserDirectory, get_user_directory
from src.identity.verifier import Identity, optional_identity, require_identity
from src.models.review import FlagCreate, FlagResult, ReviewCreate, ReviewPage, ReviewUpdate, ReviewWriteResult
from src.models.search import SearchFilters, SearchResponse
from src.models.site import SiteCreate, SiteDetail, SiteUpdate
from src.reviews import engine as reviews
from src.search.planner import search
from src.sites import service as sites

# Configure logging - Adjust format to remove INFO/WARNING prefixes
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Campsite API",
    description="Campsite search and reviews",
    version="1.0.0"
)


@app.exception_handler(CampsiteError)
async def campsite_error_handler(request: Request, exc: CampsiteError):
    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "retryable": exc.retryable},
        headers=headers,
    )


def client_address(request: Request) -> Optional[str]:
    if config.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _uid(identity: Optional[Identity]) -> Optional[str]:
    return identity.uid if identity else None


@app.get("/")
def read_root():
    return {"message": "Welcome to the Campsite API"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


###############################
# SEARCH
###############################
@app.get("/api/search/campsites", response_model=SearchResponse)
def search_campsites(
    db: Session = Depends(get_db),
    q: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: Optional[float] = None,
    min_rating: Optional[float] = Query(default=None, alias="minRating"),
    has_photos: bool = Query(default=False, alias="hasPhotos"),
    sort: str = "newest",
    page: int = 1,
    limit: int = config.SEARCH_DEFAULT_LIMIT,
):
    try:
        filters = SearchFilters(
            q=q, lat=lat, lng=lng, radius=radius, min_rating=min_rating,
            has_photos=has_photos, sort=sort, page=page, limit=limit,
        )
    except ValidationError as e:
        # Input echo dropped: a non-finite value cannot be rendered as JSON
        detail = [{"loc": err["loc"], "msg": err["msg"], "type": err["type"]} for err in e.errors()]
        raise HTTPException(status_code=422, detail=detail)

    try:
        return search(db, filters)
    except CampsiteError:
        raise
    except Exception as e:
        logger.error(f"Search error: {str(e)}")
        raise HTTPException(status_code=500, detail="Search failed")


###############################
# CAMPSITES
###############################
@app.get("/api/campsites", response_model=List[SiteDetail])
def get_campsites(
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(optional_identity),
):
    requester = _uid(identity)
    return [sites.to_detail(site, requester) for site in sites.list_sites(db, requester)]


@app.post("/api/campsites", response_model=SiteDetail, status_code=201)
def create_campsite(
    payload: SiteCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    site = sites.create_site(db, identity.uid, payload)
    return sites.to_detail(site, identity.uid)


@app.get("/api/campsites/{site_id}", response_model=SiteDetail)
def get_campsite(
    site_id: str,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(optional_identity),
):
    requester = _uid(identity)
    return sites.to_detail(sites.get_site(db, site_id, requester), requester)


@app.put("/api/campsites/{site_id}", response_model=SiteDetail)
def update_campsite(
    site_id: str,
    payload: SiteUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    site = sites.update_site(db, site_id, identity.uid, payload)
    return sites.to_detail(site, identity.uid)


@app.delete("/api/campsites/{site_id}", status_code=204)
def delete_campsite(
    site_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    sites.delete_site(db, site_id, identity.uid)
    return Response(status_code=204)


###############################
# REVIEWS
###############################
@app.post("/api/campsites/{site_id}/reviews", response_model=ReviewWriteResult)
def submit_review(
    site_id: str,
    payload: ReviewCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(optional_identity),
):
    try:
        review_id, created = reviews.submit_review(
            db,
            site_id,
            payload.rating,
            comment=payload.comment,
            author_id=_uid(identity),
            origin_address=client_address(request),
        )
    except CampsiteError:
        raise
    except Exception as e:
        logger.error(f"Review creation error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create review")

    response.status_code = 201 if created else 200
    return ReviewWriteResult(
        message="Review created successfully" if created else "Review updated successfully",
        review_id=review_id,
    )


@app.get("/api/campsites/{site_id}/reviews", response_model=ReviewPage)
def get_reviews(
    site_id: str,
    db: Session = Depends(get_db),
    directory: UserDirectory = Depends(get_user_directory),
    page: int = 1,
    limit: int = config.REVIEWS_DEFAULT_LIMIT,
    sort: str = "newest",
):
    try:
        return reviews.list_reviews(db, site_id, page=page, limit=limit, sort=sort, directory=directory)
    except CampsiteError:
        raise
    except Exception as e:
        logger.error(f"Reviews fetch error: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch reviews")


@app.put("/api/campsites/{site_id}/reviews/{review_id}")
def update_review(
    site_id: str,
    review_id: str,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    reviews.update_review(
        db, review_id, identity.uid,
        rating=payload.rating, comment=payload.comment, site_id=site_id,
    )
    return {"message": "Review updated successfully"}


@app.delete("/api/campsites/{site_id}/reviews/{review_id}")
def delete_review(
    site_id: str,
    review_id: str,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    reviews.delete_review(db, review_id, identity.uid, site_id=site_id)
    return {"message": "Review deleted successfully"}


@app.post("/api/campsites/{site_id}/reviews/{review_id}/flag", response_model=FlagResult)
def flag_review(
    site_id: str,
    review_id: str,
    payload: FlagCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    hidden = reviews.flag_review(db, review_id, identity.uid, payload.reason, site_id=site_id)
    return FlagResult(message="Review flagged successfully", hidden=hidden)
