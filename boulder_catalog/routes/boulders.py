from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from boulder_catalog.errors import (
    ConversionError,
    MalformedStyleData,
    MissingIdentifier,
    SaveError,
    UploadError,
    ValidationError,
)
from boulder_catalog.helpers.image_intake import HEIC_TYPES, ImageIntake, SelectedImage
from boulder_catalog.helpers.record import card_context, default_draft, from_persisted, parse_form
from boulder_catalog.helpers.storage import (
    LocalUploadSession,
    discard_pending_image,
    load_pending_image,
    stash_pending_image,
)
from boulder_catalog.helpers.style import HEIGHT_OPTIONS, STYLE_OPTIONS
from boulder_catalog.helpers.submission import submit_form
from boulder_catalog.helpers.sync import BoulderSynchronizer, SqlAlchemyBoulderStore


boulders_bp = Blueprint("boulders", __name__)

EDITING_KEY = "editing_boulder_id"
CREATING_KEY = "creating_boulder"

# HTTP status for a failed save, by error type
ERROR_STATUS = {
    ValidationError: 400,
    MissingIdentifier: 400,
    ConversionError: 422,
    UploadError: 502,
    SaveError: 500,
}

SAVE_FAILED_MESSAGE = "No se pudo guardar el bloque."


def _synchronizer() -> BoulderSynchronizer:
    return BoulderSynchronizer(
        SqlAlchemyBoulderStore(),
        editing_id=session.get(EDITING_KEY),
        creating=bool(session.get(CREATING_KEY)),
    )


def _remember(sync: BoulderSynchronizer):
    """Persist the open edit/create session in the cookie."""
    if sync.editing_id:
        session[EDITING_KEY] = sync.editing_id
    else:
        session.pop(EDITING_KEY, None)

    if sync.creating:
        session[CREATING_KEY] = True
    else:
        session.pop(CREATING_KEY, None)


def _editable(record: dict) -> dict:
    try:
        return from_persisted(record)
    except MalformedStyleData as e:
        current_app.logger.warning("Boulder %s: %s; editing with no style tags", record.get("id"), e)
        return {**record, "style": []}


def _intake_for(state: dict) -> ImageIntake:
    cfg = current_app.config
    endpoint = cfg.get("UPLOAD_ENDPOINT") or url_for("api.api_upload_boulder_image", _external=True)
    return ImageIntake(
        route_id=state.get("id"),
        endpoint=endpoint,
        existing_image=state.get("image"),
        timeout=cfg["UPLOAD_TIMEOUT"],
    )


def _upload_session():
    """
    HTTP session for the image upload.

    UPLOAD_SESSION_FACTORY (tests, custom transports) wins; with an
    UPLOAD_ENDPOINT the intake opens its own aiohttp session; otherwise the
    payload is stored in-process instead of POSTing back to this server.
    """
    cfg = current_app.config
    factory = cfg.get("UPLOAD_SESSION_FACTORY")
    if factory:
        return factory()
    if cfg.get("UPLOAD_ENDPOINT"):
        return None
    return LocalUploadSession()


def _form_context(state: dict, intake: ImageIntake, pending_token=None) -> dict:
    creating = not state.get("id")
    file = intake.file
    return {
        "state": state,
        "creating": creating,
        "action": url_for("boulders.create_boulder") if creating
        else url_for("boulders.update_boulder", boulder_id=state["id"]),
        "cancel_action": url_for("boulders.cancel"),
        "style_options": STYLE_OPTIONS,
        "height_options": HEIGHT_OPTIONS,
        "preview": intake.preview,
        "selected_name": file.filename if file else None,
        "selected_is_heic": bool(file and file.needs_conversion),
        "pending_token": pending_token,
        "accept": "image/*," + ",".join(HEIC_TYPES) + ",.heic,.heif",
    }


def _render_page(sync: BoulderSynchronizer, form=None, status=200):
    """Listing with either cards only, or one card swapped for a form."""
    cards = [card_context(b) for b in sync.boulders]
    return render_template(
        "boulders.html",
        cards=cards,
        editing_id=sync.editing_id,
        creating=sync.creating,
        form=form,
    ), status


@boulders_bp.route("/")
def index():
    sync = _synchronizer()
    result = sync.list()
    if not result.ok:
        flash("No se pudieron cargar los bloques.", "warning")

    form = None
    if sync.creating:
        state = default_draft(current_app.config["DEFAULT_SECTOR_ID"])
        form = _form_context(state, _intake_for(state))
    elif sync.editing_id:
        record = sync.find(sync.editing_id)
        if record is None:
            # edited boulder is gone (deleted in the store, or stale cookie)
            sync.cancel()
            _remember(sync)
        else:
            state = _editable(record)
            form = _form_context(state, _intake_for(state))

    return _render_page(sync, form)


@boulders_bp.route("/boulders/new")
def new_boulder():
    sync = _synchronizer()
    sync.start_create()
    _remember(sync)
    return redirect(url_for("boulders.index"))


@boulders_bp.route("/boulders/<boulder_id>/edit")
def edit_boulder(boulder_id):
    sync = _synchronizer()
    sync.start_edit(boulder_id)
    _remember(sync)
    return redirect(url_for("boulders.index", _anchor=f"boulder-{boulder_id}"))


@boulders_bp.route("/boulders/cancel", methods=["POST"])
def cancel():
    discard_pending_image(current_app.config["UPLOAD_DIR"], request.form.get("pending_image"))
    sync = _synchronizer()
    sync.cancel()
    _remember(sync)
    return redirect(url_for("boulders.index"))


@boulders_bp.route("/boulders", methods=["POST"])
async def create_boulder():
    base = default_draft(current_app.config["DEFAULT_SECTOR_ID"])
    return await _submit(base)


@boulders_bp.route("/boulders/<boulder_id>", methods=["POST"])
async def update_boulder(boulder_id):
    sync = _synchronizer()
    sync.list()
    record = sync.find(boulder_id)
    if record is None:
        abort(404)
    return await _submit(_editable(record))


async def _submit(base: dict):
    cfg = current_app.config
    upload_dir = cfg["UPLOAD_DIR"]
    state = parse_form(request.form, base, cfg["DEFAULT_SECTOR_ID"])

    intake = _intake_for(state)

    # a fresh pick replaces whatever was kept from a failed save
    pending_token = (request.form.get("pending_image") or "").strip() or None
    new_file = SelectedImage.from_upload(request.files.get("image"))
    if new_file is not None:
        discard_pending_image(upload_dir, pending_token)
        pending_token = None
        intake.select(new_file)
    else:
        kept = load_pending_image(upload_dir, pending_token)
        if kept is None:
            pending_token = None
        intake.select(kept)

    selected = intake.file

    sync = _synchronizer()
    if state.get("id"):
        sync.start_edit(state["id"])
    else:
        sync.start_create()

    result = await submit_form(state, intake, sync, session=_upload_session())

    if result.ok:
        discard_pending_image(upload_dir, pending_token)
        _remember(sync)
        flash(f"Guardado: {state['name']}.", "success")
        return redirect(url_for("boulders.index"))

    # keep the form open with what was typed, and the picked image on disk
    if selected is not None and pending_token is None:
        pending_token = stash_pending_image(upload_dir, selected)
    if intake.file is None:
        intake.select(selected)

    if isinstance(result.error, SaveError):
        flash(SAVE_FAILED_MESSAGE, "warning")
    else:
        flash(str(result.error), "warning")

    _remember(sync)
    await intake.load_preview()
    sync.list()
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(result.error, cls)), 400)
    return _render_page(sync, _form_context(state, intake, pending_token), status)
