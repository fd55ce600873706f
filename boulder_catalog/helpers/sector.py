from boulder_catalog.extensions import db
from boulder_catalog.models import Sector

DEFAULT_SECTOR_NAME = "Sector por defecto"

def get_or_create_sector(sector_id: str, name: str = DEFAULT_SECTOR_NAME):
    """
    Make sure the sector new boulders point at exists.

    - Reuses the row if it's already there
    - Otherwise inserts it with the given name and commits
    """
    sector = db.session.get(Sector, sector_id)
    if sector:
        return sector

    sector = Sector(id=sector_id, name=name)
    db.session.add(sector)
    db.session.commit()
    return sector
