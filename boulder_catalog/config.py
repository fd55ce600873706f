import os

class Config:
    raw_db_url = os.getenv("DATABASE_URL")

    if raw_db_url:
        if raw_db_url.startswith("postgres://"):
            raw_db_url = raw_db_url.replace("postgres://", "postgresql://", 1)
        SQLALCHEMY_DATABASE_URI = raw_db_url
    else:
        SQLALCHEMY_DATABASE_URI = "sqlite:///boulders.db"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-dev-secret")

    # Every boulder created from the form lands in this sector for now
    DEFAULT_SECTOR_ID = os.getenv("DEFAULT_SECTOR_ID", "5f08920b-ff8b-45ed-b3f8-a4976bdd71b7")

    # Where /api/boulders writes images, and where the form posts them.
    # UPLOAD_ENDPOINT empty -> stored by this app, served from /uploads
    UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))
    UPLOAD_ENDPOINT = os.getenv("UPLOAD_ENDPOINT", "")
    UPLOAD_TIMEOUT = float(os.getenv("UPLOAD_TIMEOUT", "30"))
    MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(15 * 1024 * 1024)))

    # Callable returning an aiohttp-style session for image uploads.
    # None -> in-process store when UPLOAD_ENDPOINT is empty, aiohttp otherwise
    UPLOAD_SESSION_FACTORY = None
