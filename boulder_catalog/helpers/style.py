import json
import logging

from boulder_catalog.errors import MalformedStyleData

logger = logging.getLogger(__name__)

# (stored value, label shown in the UI), in the order the form lists them
STYLE_OPTIONS = [
    ("Flat approach", "Aproximación plana"),
    ("Uphill approach", "Aproximación en subida"),
    ("Steep uphill approach", "Aproximación en subida pronunciada"),
    ("Downhill approach", "Aproximación en bajada"),
    ("Morning sun", "Sol de mañana"),
    ("Afternoon sun", "Sol de tarde"),
    ("Tree-filtered sun (am)", "Sol filtrado por árboles (mañana)"),
    ("Tree-filtered sun (pm)", "Sol filtrado por árboles (tarde)"),
    ("Sunny most of the day", "Soleado la mayor parte del día"),
    ("Shady most of the day", "Sombreado la mayor parte del día"),
    ("Boulders dry fast", "Los bloques se secan rápido"),
    ("Boulders dry in rain", "Los bloques se escalan bajo la lluvia"),
    ("Start seated", "Inicio sentado"),
    ('"Highball", dangerous', '"Highball", peligroso'),
    ("Slabby problem", "Problema de Slab"),
    ("Very steep problem", "Problema muy desplomado"),
    ("Reachy, best if tall", "Morfo, mejor si eres alto"),
    ("Dynamic", "Dinámico"),
    ("Pumpy or sustained", "Bombeador o sostenido"),
    ("Technical", "Técnico"),
    ("Powerful", "Potente"),
    ("Pockets", "Pockets"),
    ("Small edges, crimpy", "Regletas, crimpy"),
    ("Slopey holds", "Agarres de Sloper"),
]

STYLE_LABELS = dict(STYLE_OPTIONS)

HEIGHTS = ("lowball", "regular", "highball")

HEIGHT_LABELS = {
    "lowball": "Lowball",
    "regular": "Regular",
    "highball": "Highball",
}

# Form select options; "" means "not set"
HEIGHT_OPTIONS = [
    ("", "Seleccionar altura"),
    ("lowball", "Bajo (Lowball)"),
    ("regular", "Regular"),
    ("highball", "Alto (Highball)"),
]


def decode_style(raw) -> list[str]:
    """
    Accepts:
      - list/tuple of tag strings (already decoded)
      - JSON string of that list, e.g. '["Dynamic","Technical"]'
      - None
    Returns the tags as a list, in stored order.

    Raises MalformedStyleData if the text isn't a JSON array of strings.
    """
    if raw is None:
        return []

    if isinstance(raw, (list, tuple)):
        return list(raw)

    if not isinstance(raw, str):
        raise MalformedStyleData(raw, f"unexpected type {type(raw).__name__}")

    text = raw.strip()
    if not text:
        return []

    try:
        parsed = json.loads(text)
    except ValueError as e:
        raise MalformedStyleData(raw, str(e)) from e

    if not isinstance(parsed, list) or not all(isinstance(t, str) for t in parsed):
        raise MalformedStyleData(raw, "expected a JSON array of strings")

    return parsed


def decode_style_or_empty(raw) -> list[str]:
    """Read path for display: bad data shows as no tags (and gets logged)."""
    try:
        return decode_style(raw)
    except MalformedStyleData as e:
        logger.warning("%s; showing no style tags", e)
        return []


def encode_style(tags) -> str:
    """Inverse of decode_style: '["Dynamic","Technical"]'."""
    return json.dumps(list(tags), separators=(",", ":"), ensure_ascii=False)


def style_label(tag: str) -> str:
    return STYLE_LABELS.get(tag, tag)


def height_label(height) -> str:
    if not height:
        return ""
    return HEIGHT_LABELS.get(height, height)
