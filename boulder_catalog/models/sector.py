import uuid
from datetime import datetime
from boulder_catalog.extensions import db

class Sector(db.Model):
    __tablename__ = "sector"

    # UUID strings, same shape as the hosted table the form was built against
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Public name of the sector, e.g. "La Pedriza - Tortuga"
    name = db.Column(db.String(160), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    boulders = db.relationship(
        "Boulder",
        back_populates="sector",
        lazy=True,
    )
