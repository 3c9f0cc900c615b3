"""
Worksheet Extractor Service — Main Entry Point
===============================================
Starts the Flask-based extraction microservice.

Usage:
    python main.py                    # Default: 0.0.0.0:5000
    python main.py --port 8000        # Custom port
    python main.py --debug            # Debug mode
"""

import argparse
import logging

from mcq_extractor.server import create_app

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Worksheet Extractor Service")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=5000, help="Bind port")
    parser.add_argument("--upload-dir", default=None, help="Scratch dir for uploads")
    parser.add_argument("--ocr-lang", default="eng", help="Tesseract language")
    parser.add_argument("--debug", action="store_true", help="Debug mode")
    args = parser.parse_args()

    config = {"OCR_LANGUAGE": args.ocr_lang}
    if args.upload_dir:
        config["UPLOAD_DIR"] = args.upload_dir

    app = create_app(config)

    logger.info(f"Upload directory: {app.config['UPLOAD_DIR']}")
    logger.info(f"Starting server on {args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
