import logging

from boulder_catalog.errors import ConversionError, UploadError, ValidationError
from boulder_catalog.helpers.record import is_draft, to_submission, validate_submission
from boulder_catalog.helpers.sync import SyncResult

logger = logging.getLogger(__name__)


async def submit_form(form_state: dict, intake, synchronizer, session=None) -> SyncResult:
    """
    Save a boulder form.

    1. name must be set
    2. upload the newly selected image, if any (HEIC converted first)
    3. create (draft) or update (has id), which re-lists on success

    A failed upload stops here: nothing reaches the store and the caller
    still has the form state to re-render.
    """
    try:
        validate_submission(form_state)
    except ValidationError as e:
        return SyncResult.failure(e)

    try:
        image_url = await intake.upload(session=session)
    except (ConversionError, UploadError) as e:
        return SyncResult.failure(e)

    record = to_submission(form_state, image=image_url)

    if is_draft(record):
        return synchronizer.create(record)

    logger.info("Updating boulder %s (%s)", record["id"], record.get("name"))
    return synchronizer.update(record)
