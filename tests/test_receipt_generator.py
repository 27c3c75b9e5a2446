import random
import unittest
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlsplit

from evatlottery.receipts import (
    FORMAT_V1,
    FORMAT_V2,
    SIGNED_URL,
    TOKEN,
    generate_codes,
    generate_signed_url,
    generate_token,
    parse,
)
from evatlottery.receipts.generator import qr_image_url

NOW = datetime(2025, 1, 14, 15, 30, 12, tzinfo=timezone.utc)


class GeneratorTestCase(unittest.TestCase):
    def test_generated_tokens_parse(self):
        rng = random.Random(5)
        for _ in range(50):
            token = generate_token(2025, rng=rng)
            self.assertTrue(token.startswith("GRA-VAT-2025-"))
            self.assertTrue(parse(token).valid, token)

    def test_generated_signed_urls_parse(self):
        url, receipt_number = generate_signed_url(rng=random.Random(5), now=NOW)
        parsed = parse(url)
        self.assertTrue(parsed.valid)
        self.assertEqual(parsed.variant, SIGNED_URL)
        self.assertEqual(parsed.unique_id, receipt_number)
        self.assertEqual(parsed.timestamp, NOW)

    def test_generate_codes_v1(self):
        codes = generate_codes(5, FORMAT_V1, rng=random.Random(9), now=NOW)
        self.assertEqual(len(codes), 5)
        for code in codes:
            self.assertEqual(code.variant, TOKEN)
            self.assertEqual(parse(code.code).unique_id, code.unique_id)

    def test_generate_codes_v2_uses_base_url(self):
        codes = generate_codes(
            2,
            FORMAT_V2,
            base_url="https://staging.gra.gov.gh/verify",
            rng=random.Random(9),
            now=NOW,
        )
        for code in codes:
            self.assertTrue(code.code.startswith("https://staging.gra.gov.gh/verify/?"))
            self.assertEqual(parse(code.code).unique_id, code.unique_id)

    def test_qr_image_url_encodes_data(self):
        url = qr_image_url("https://evat-verification.gra.gov.gh/?rcpt=1&ts=2")
        parts = urlsplit(url)
        self.assertEqual(parts.netloc, "api.qrserver.com")
        query = parse_qs(parts.query)
        self.assertEqual(query["data"], ["https://evat-verification.gra.gov.gh/?rcpt=1&ts=2"])
        self.assertEqual(query["size"], ["200x200"])

    def test_rejects_bad_arguments(self):
        with self.assertRaises(ValueError):
            generate_codes(-1)
        with self.assertRaises(ValueError):
            generate_codes(1, "v3")
        self.assertEqual(generate_codes(0), [])


if __name__ == "__main__":
    unittest.main()
