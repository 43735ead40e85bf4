"""
GIF Spoofer - Local Server
Flask-based server that converts uploaded images into single-frame GIFs.
"""

import os
from io import BytesIO
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS

from gif_spoofer import (
    GIF_MIME_TYPE,
    GifConfig,
    ImageTooLargeError,
    convert_image_bytes,
    parse_max_pixels,
)

VERSION = "1.0.0-offline"

# Configuration
HOST = os.environ.get("GIF_SPOOFER_HOST", "localhost")
PORT = int(os.environ.get("GIF_SPOOFER_PORT", "5000"))
# Encoding runs in pure Python, about a minute per million pixels for a
# colourful photo, so keep the limit low on shared hosts.
MAX_PIXELS = parse_max_pixels(os.environ.get("GIF_SPOOFER_MAX_PIXELS", "1000000"))


def output_name(filename: Optional[str]) -> str:
    """Name for the converted download, keeping the upload's stem."""
    stem = Path(filename or "").stem
    return f"{stem or 'image'}.gif"


def create_app(max_pixels: Optional[int] = MAX_PIXELS) -> Flask:
    app = Flask(__name__)
    CORS(app)
    config = GifConfig(max_pixels=max_pixels)

    @app.route("/api/health")
    def health_check():
        return jsonify({"status": "healthy", "version": VERSION, "mode": "local"})

    @app.route("/api/convert", methods=["POST"])
    def convert():
        """Convert an uploaded image into a static GIF."""
        upload = request.files.get("image")
        if upload is None or not upload.filename:
            return jsonify({"error": "No image provided. Upload a file in the 'image' field."}), 400

        if not (upload.mimetype or "").startswith("image/"):
            return jsonify({"error": "Please upload an image file."}), 400

        try:
            gif_data = convert_image_bytes(upload.read(), config)
        except ImageTooLargeError as e:
            return jsonify({"error": str(e)}), 413
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except Exception as e:
            app.logger.exception("Error converting %s", upload.filename)
            return jsonify({"error": f"Failed to convert image: {e}"}), 500

        return send_file(
            BytesIO(gif_data),
            mimetype=GIF_MIME_TYPE,
            as_attachment=True,
            download_name=output_name(upload.filename),
        )

    return app


app = create_app()


def main():
    """Run the server."""
    print("=" * 50)
    print("GIF Spoofer - Offline Mode")
    print("=" * 50)
    print(f"\nPixel limit: {MAX_PIXELS if MAX_PIXELS is not None else 'none'}")
    print("Large colourful images take about a minute per million pixels.")
    print(f"Serving on http://{HOST}:{PORT}")
    print("Press Ctrl+C to stop the server.\n")

    app.run(host=HOST, port=PORT, debug=False)


if __name__ == "__main__":
    main()
