# seed_boulders.py
from dotenv import load_dotenv

load_dotenv()

from boulder_catalog import create_app  # noqa: E402
from boulder_catalog.extensions import db  # noqa: E402
from boulder_catalog.helpers.sector import get_or_create_sector  # noqa: E402
from boulder_catalog.helpers.style import encode_style  # noqa: E402
from boulder_catalog.models import Boulder  # noqa: E402

SAMPLE_BOULDERS = [
    {"name": "El Techo", "grade": "7A", "quality": 85, "height": "regular",
     "style": ["Very steep problem", "Powerful", "Start seated"]},
    {"name": "La Placa", "grade": "6A", "quality": 60, "height": "lowball",
     "style": ["Slabby problem", "Technical", "Morning sun"]},
    {"name": "Miedo Escénico", "grade": "6C+", "quality": 95, "height": "highball",
     "style": ['"Highball", dangerous', "Small edges, crimpy"]},
]

def main():
    app = create_app()
    with app.app_context():
        db.create_all()

        sector_id = app.config["DEFAULT_SECTOR_ID"]
        get_or_create_sector(sector_id)

        existing = {b.name for b in Boulder.query.all()}
        print(f"Existing boulders: {len(existing)}")

        for sample in SAMPLE_BOULDERS:
            if sample["name"] in existing:
                continue
            db.session.add(Boulder(
                name=sample["name"],
                grade=sample["grade"],
                quality=sample["quality"],
                height=sample["height"],
                style=encode_style(sample["style"]),
                type="boulder",
                sector_id=sector_id,
            ))

        db.session.commit()
        print(f"Now have {Boulder.query.count()} boulders in the DB.")

if __name__ == "__main__":
    main()
