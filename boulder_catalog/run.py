import logging

from dotenv import load_dotenv

load_dotenv()
logging.basicConfig(level=logging.INFO)

from boulder_catalog import create_app  # noqa: E402
from boulder_catalog.extensions import db  # noqa: E402
from boulder_catalog.helpers.sector import get_or_create_sector  # noqa: E402

api = create_app()

def init_db():
    """Ensure DB tables and the default sector row exist."""
    db.create_all()
    get_or_create_sector(api.config["DEFAULT_SECTOR_ID"])

# Run DB bootstrap once at startup
with api.app_context():
    init_db()

if __name__ == "__main__":
    api.run(debug=True)
