from flask import Blueprint, current_app, jsonify, request, send_from_directory

from boulder_catalog.helpers.storage import save_image_payload


api_bp = Blueprint("api", __name__)

@api_bp.route("/api/boulders", methods=["POST"])
def api_upload_boulder_image():
    """
    Store a boulder photo sent by the form.

    Payload:
      {
        "imageData": "data:image/jpeg;base64,....",
        "routeId": "<boulder id>" | "new",
        "imageFormat": "image/jpeg"
      }

    Response:
      { "success": true, "url": "https://.../uploads/boulders/<file>.jpg" }
      { "success": false, "error": "..." }
    """
    data = request.get_json(silent=True)
    body, status = save_image_payload(data)
    return jsonify(body), status


@api_bp.route("/uploads/<path:filename>")
def uploaded_file(filename):
    return send_from_directory(current_app.config["UPLOAD_DIR"], filename)
