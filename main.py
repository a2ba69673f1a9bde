import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from database import get_db, serialize
from errors import EventAppError, ValidationError
from media import CloudinaryUploader
from schemas import BookingRequest, EventDetails, EventUpdateRequest, validate_event
from store import BookingStore, EventStore

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="DevEvent API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Dependencies

def get_event_store() -> EventStore:
    return EventStore(get_db())


def get_booking_store() -> BookingStore:
    return BookingStore(get_db())


@lru_cache(maxsize=None)
def get_uploader() -> CloudinaryUploader:
    return CloudinaryUploader()

# Error handlers

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"message": exc.message, "errors": exc.errors})


@app.exception_handler(EventAppError)
async def app_error_handler(request: Request, exc: EventAppError):
    if exc.status_code >= 500:
        # Detail was logged where the error was raised
        return JSONResponse(status_code=exc.status_code, content={"message": "Internal server error"})
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {".".join(str(p) for p in e["loc"]): e["msg"] for e in exc.errors()}
    return JSONResponse(status_code=400, content={"message": "Invalid request", "errors": errors})

# Helpers

def parse_json_list(raw: Optional[str], field: str) -> List[Any]:
    """Decode a multipart field holding a JSON array."""
    if raw is None or not raw.strip():
        raise ValidationError(f"Field {field} is required", {field: "Expected a JSON array."})
    try:
        value = json.loads(raw)
    except ValueError:
        raise ValidationError("Invalid JSON in tags or agenda", {field: "Invalid JSON."})
    if not isinstance(value, list):
        raise ValidationError("Invalid JSON in tags or agenda", {field: "Expected a JSON array."})
    return value


@app.get("/")
def read_root():
    return {"message": "DevEvent API running"}


api = APIRouter(prefix="/api")

# Events

@api.post("/events", status_code=201)
def create_event(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    overview: Optional[str] = Form(None),
    venue: Optional[str] = Form(None),
    location: Optional[str] = Form(None),
    date: Optional[str] = Form(None),
    time: Optional[str] = Form(None),
    mode: Optional[str] = Form(None),
    audience: Optional[str] = Form(None),
    organizer: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    agenda: Optional[str] = Form(None),
    slug: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    events: EventStore = Depends(get_event_store),
    uploader: CloudinaryUploader = Depends(get_uploader),
):
    if image is None:
        raise ValidationError("Image file is required", {"image": "Image file is required."})
    data = {
        "title": title,
        "description": description,
        "overview": overview,
        "venue": venue,
        "location": location,
        "date": date,
        "time": time,
        "mode": mode,
        "audience": audience,
        "organizer": organizer,
        "tags": parse_json_list(tags, "tags"),
        "agenda": parse_json_list(agenda, "agenda"),
        "slug": slug,
    }
    # Reject bad submissions before anything is sent to the image host
    validate_event(data, model=EventDetails)

    content = image.file.read()
    if not content:
        raise ValidationError("Image file is required", {"image": "Image file is empty."})
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise ValidationError("Image file is too large", {"image": "Image file is too large."})
    data["image"] = uploader.upload(content)

    created = events.create(data)
    logger.info("Created event %s", created["slug"])
    return {"message": "Event created successfully", "event": serialize(created)}


@api.get("/events")
def list_events(upcoming: bool = False, limit: Optional[int] = None,
                events: EventStore = Depends(get_event_store)):
    """All events newest first, or with ``upcoming=true`` the ones still ahead, soonest first."""
    found = events.find_upcoming(limit=limit) if upcoming else events.find_all()
    return {"message": "Events fetched successfully", "events": [serialize(it) for it in found]}


@api.get("/events/{slug}")
def get_event(slug: str, events: EventStore = Depends(get_event_store),
              bookings: BookingStore = Depends(get_booking_store)):
    event = events.find_by_slug(slug)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"event": serialize(event), "bookings": bookings.count_for_event(event["_id"])}


@api.get("/events/{slug}/similar")
def similar_events(slug: str, events: EventStore = Depends(get_event_store)):
    return {"events": [serialize(it) for it in events.find_similar_to(slug)]}


@api.patch("/events/{slug}")
def update_event(slug: str, body: EventUpdateRequest, events: EventStore = Depends(get_event_store)):
    updated = events.update(slug, body.model_dump(exclude_unset=True))
    if not updated:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"message": "Event updated successfully", "event": serialize(updated)}

# Bookings

@api.post("/bookings", status_code=201)
def create_booking(body: BookingRequest, bookings: BookingStore = Depends(get_booking_store)):
    booking = bookings.create(body.event_id, body.email)
    return {"message": "Booking created successfully", "booking": serialize(booking)}


app.include_router(api)


@app.get("/test")
def test_database():
    response: Dict[str, Any] = {"backend": "✅ Running"}
    try:
        db = get_db()
        collections = db.list_collection_names()
        response.update({
            "database": "✅ Connected & Working",
            "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
            "database_name": db.name,
            "connection_status": "Connected",
            "collections": collections[:10]
        })
    except Exception as e:
        logger.error("Database check failed: %s", e)
        response.update({"database": "❌ Not Available", "connection_status": "Not Connected"})
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
