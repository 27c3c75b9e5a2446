"""Print demo receipt codes in the configured QR format.

Usage::

    python scripts/generate_receipts.py --count 5
    python scripts/generate_receipts.py --count 3 --json
"""

from __future__ import annotations

import argparse
import json

from evatlottery.config import load_settings
from evatlottery.workflows import generate_receipt_codes


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate demo VAT receipt QR codes.")
    parser.add_argument("--count", type=int, default=5)
    parser.add_argument("--json", action="store_true", help="emit JSON instead of text")
    args = parser.parse_args()

    settings = load_settings()
    codes = generate_receipt_codes(args.count, settings=settings)
    if args.json:
        print(json.dumps([code.to_json() for code in codes], indent=2))
        return
    for code in codes:
        print(code.code)
        print(f"  QR image: {code.qr_image_url}")


if __name__ == "__main__":
    main()
