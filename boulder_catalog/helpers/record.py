from typing import Optional

from boulder_catalog.errors import ValidationError
from boulder_catalog.helpers.style import (
    HEIGHTS,
    decode_style,
    decode_style_or_empty,
    encode_style,
    height_label,
    style_label,
)

# Columns the client is allowed to write (id/timestamps are the store's)
BOULDER_FIELDS = (
    "name",
    "description",
    "grade",
    "quality",
    "type",
    "image",
    "image_line",
    "latitude",
    "longitude",
    "height",
    "style",
    "top",
    "sector_id",
)

SERVER_FIELDS = ("created_at", "updated_at")

DEFAULT_TYPE = "boulder"

QUALITY_MIN = 0
QUALITY_MAX = 100

MAPS_URL = "https://maps.google.com/?q={lat},{lon}"


def default_draft(sector_id: str) -> dict:
    """Empty boulder for the "create" form. No id -> it's a draft."""
    return {
        "name": "",
        "description": None,
        "grade": None,
        "sector_id": sector_id,
        "quality": None,
        "type": DEFAULT_TYPE,
        "image": None,
        "image_line": None,
        "latitude": None,
        "longitude": None,
        "height": None,
        "style": [],
        "top": None,
    }


def is_draft(record: dict) -> bool:
    return not record.get("id")


def from_persisted(record: dict) -> dict:
    """
    Form state for editing a stored boulder.

    Copies the record (the caller's dict is left alone) and decodes style
    into a list so the multi-select can work on it.
    Raises MalformedStyleData if the stored style can't be read.
    """
    state = dict(record)
    state["style"] = decode_style(record.get("style"))
    return state


def to_submission(form_state: dict, image=...) -> dict:
    """
    Record to hand to the synchronizer.

    - style goes back to its JSON text form
    - id is kept for persisted records (update) and dropped for drafts (create)
    - image is replaced by the resolved upload URL when one is given
    - server timestamps are never sent
    """
    out = {k: v for k, v in form_state.items() if k not in SERVER_FIELDS}

    if is_draft(out):
        out.pop("id", None)

    if image is not ...:
        out["image"] = image

    out["style"] = encode_style(decode_style(form_state.get("style")))
    return out


def validate_submission(form_state: dict) -> None:
    """Name is the only required field."""
    if not (form_state.get("name") or "").strip():
        raise ValidationError("El nombre es obligatorio.")


def _text_or_none(raw) -> Optional[str]:
    s = (raw or "").strip()
    return s or None


def _float_or_none(raw) -> Optional[float]:
    s = (raw or "").strip()
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def _quality(raw) -> Optional[int]:
    s = (raw or "").strip()
    if not s:
        return None
    try:
        q = int(float(s))
    except (ValueError, OverflowError):
        return None
    # range slider bounds
    return max(QUALITY_MIN, min(QUALITY_MAX, q))


def parse_form(form, base: dict, default_sector_id: str) -> dict:
    """
    Build typed form state from a submitted HTML form.

    `form` is a werkzeug MultiDict (request.form). `base` is the state the
    form was rendered from (a draft or from_persisted(...)); fields the form
    doesn't own (id, image, image_line) are carried over from it.
    """
    state = dict(base)

    state["name"] = (form.get("name") or "").strip()
    state["description"] = _text_or_none(form.get("description"))
    state["grade"] = _text_or_none(form.get("grade"))

    # read-only input in the form
    state["type"] = base.get("type") or DEFAULT_TYPE

    height = (form.get("height") or "").strip()
    state["height"] = height if height in HEIGHTS else None

    state["quality"] = _quality(form.get("quality"))
    state["top"] = bool(form.get("top"))
    state["style"] = [s for s in form.getlist("style") if s]

    state["latitude"] = _float_or_none(form.get("latitude"))
    state["longitude"] = _float_or_none(form.get("longitude"))

    state["sector_id"] = (
        _text_or_none(form.get("sector_id"))
        or base.get("sector_id")
        or default_sector_id
    )

    return state


def quality_display(quality) -> int:
    return quality if quality else 0


def map_link(latitude, longitude) -> Optional[str]:
    """Google Maps link, only when both coordinates are set."""
    if latitude is None or longitude is None:
        return None
    return MAPS_URL.format(lat=latitude, lon=longitude)


def card_context(record: dict) -> dict:
    """Everything the card template shows for one boulder."""
    tags = decode_style_or_empty(record.get("style"))
    return {
        "id": record.get("id"),
        "name": record.get("name"),
        "image": record.get("image"),
        "image_line": record.get("image_line"),
        "grade": record.get("grade") or "Sin grado",
        "description": record.get("description") or "Sin descripción",
        "type": record.get("type") or "No especificado",
        "height": height_label(record.get("height")) or "No especificada",
        "quality": quality_display(record.get("quality")),
        "top": "Sí" if record.get("top") else "No",
        "style_labels": [style_label(t) for t in tags],
        "map_link": map_link(record.get("latitude"), record.get("longitude")),
    }
