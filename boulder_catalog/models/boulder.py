import uuid
from datetime import datetime
from boulder_catalog.extensions import db

class Boulder(db.Model):
    __tablename__ = "boulder"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = db.Column(db.String(160), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    # Free text, e.g. "6A+" / "7b"
    grade = db.Column(db.String(20), nullable=True)

    # 0..100, set by the range slider (not enforced here)
    quality = db.Column(db.Integer, nullable=True)

    # Always "boulder" for rows created by the form
    type = db.Column(db.String(40), nullable=True)

    image = db.Column(db.String(500), nullable=True)

    # Topo with the line drawn on it, produced outside this app (read-only here)
    image_line = db.Column(db.String(500), nullable=True)

    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    # lowball / regular / highball
    height = db.Column(db.String(20), nullable=True)

    # Style tags stored as JSON string
    # Format: ["Dynamic", "Technical", ...]
    style = db.Column(db.Text, nullable=True)

    top = db.Column(db.Boolean, nullable=True)

    sector_id = db.Column(
        db.String(36),
        db.ForeignKey("sector.id"),
        nullable=True,
        index=True,
    )
    sector = db.relationship("Sector", back_populates="boulders")

    created_at = db.Column(db.DateTime, nullable=True, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=True, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        """Row as a plain dict (style left as stored text)."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "grade": self.grade,
            "quality": self.quality,
            "type": self.type,
            "image": self.image,
            "image_line": self.image_line,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "height": self.height,
            "style": self.style,
            "top": self.top,
            "sector_id": self.sector_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
