"""
Configuration for the Catalog service.

All settings are read from environment variables, falling back to
development defaults.
"""
import os

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./catalog.db")

# Uploaded images are written here and served under /uploads
UPLOADS_DIR = os.getenv("UPLOADS_DIR", os.path.join(os.getcwd(), "uploads"))
UPLOADS_URL_PREFIX = "/uploads"

# JWT settings
SECRET_KEY = os.getenv("SECRET_KEY", "fallback-secret-change-in-production")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# Admin account seeded on startup
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "change-me")

# Maximum fuzzy score (0.0 exact, 1.0 anything) for a search hit
FUZZY_THRESHOLD = float(os.getenv("FUZZY_THRESHOLD", "0.3"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
