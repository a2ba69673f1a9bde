"""
Configuration for the DevEvent API

All settings come from environment variables; defaults suit local development.
"""
import os

# Database
DATABASE_URL = os.getenv("DATABASE_URL") or os.getenv("MONGODB_URI") or "mongodb://localhost:27017"
DATABASE_NAME = os.getenv("DATABASE_NAME", "devevent")
DATABASE_TIMEOUT_MS = int(os.getenv("DATABASE_TIMEOUT_MS", "5000"))

# Collections
EVENTS_COLLECTION = "events"
BOOKINGS_COLLECTION = "bookings"

# Image host (Cloudinary)
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "DevEvent")
UPLOAD_TIMEOUT_SECONDS = int(os.getenv("UPLOAD_TIMEOUT_SECONDS", "30"))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))  # 10MB

# Upper bound on candidate slugs tried after a duplicate-key error
MAX_SLUG_ATTEMPTS = int(os.getenv("MAX_SLUG_ATTEMPTS", "1000"))

# HTTP
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
PORT = int(os.getenv("PORT", "8000"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
APP_ENV = os.getenv("APP_ENV", "development")
