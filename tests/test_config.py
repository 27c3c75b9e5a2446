import unittest

from evatlottery.config import Settings, load_settings
from evatlottery.errors import ConfigurationError


class LoadSettingsTestCase(unittest.TestCase):
    def test_defaults(self):
        settings = load_settings({})
        self.assertEqual(settings.win_percentage, 10)
        self.assertEqual(settings.max_scans_per_hour, 10)
        self.assertEqual(settings.qr_format, "v1")
        self.assertEqual(settings.backend, "local")
        self.assertEqual(settings.currency, "GH₵")
        self.assertFalse(settings.allow_data_reset)
        self.assertEqual(
            settings.prize_table.labels,
            ["GH₵5 Airtime", "GH₵10 Airtime", "GH₵50 Airtime"],
        )

    def test_environment_overrides(self):
        settings = load_settings(
            {
                "WIN_PERCENTAGE": "25",
                "MAX_SCANS_PER_HOUR": "3",
                "PRIZES": "Small=80:1,Big=20:10",
                "QR_FORMAT": "V2",
                "PRIZE_CURRENCY": "$",
                "ALLOW_DATA_RESET": "true",
                "LOTTERY_BACKEND": "remote",
                "WEBHOOK_BASE_URL": "https://hooks.example.com/webhook",
                "WEBHOOK_TIMEOUT": "5",
                "DB_URL": "sqlite:///./other.db",
            }
        )
        self.assertEqual(settings.win_percentage, 25)
        self.assertEqual(settings.max_scans_per_hour, 3)
        self.assertEqual(settings.prize_table.labels, ["Small", "Big"])
        self.assertEqual(settings.qr_format, "v2")
        self.assertEqual(settings.currency, "$")
        self.assertTrue(settings.allow_data_reset)
        self.assertEqual(settings.backend, "remote")
        self.assertEqual(settings.webhook_timeout, 5)
        self.assertEqual(settings.database_url, "sqlite:///./other.db")

    def test_custom_phone_and_token_patterns(self):
        settings = load_settings(
            {"PHONE_PATTERN": r"^\+\d{12}$", "QR_TOKEN_PATTERN": r"^DEMO-\d+$"}
        )
        self.assertTrue(settings.is_valid_participant_id("+233241234567"))
        self.assertFalse(settings.is_valid_participant_id("0241234567"))
        self.assertTrue(settings.receipt_patterns.token.match("DEMO-1"))

    def test_invalid_values_raise(self):
        for env in (
            {"WIN_PERCENTAGE": "150"},
            {"WIN_PERCENTAGE": "lots"},
            {"MAX_SCANS_PER_HOUR": "0"},
            {"QR_FORMAT": "v9"},
            {"PRIZES": "A=50,B=20"},
            {"PHONE_PATTERN": "("},
            {"LOTTERY_BACKEND": "cloud"},
            {"LOTTERY_BACKEND": "remote"},
        ):
            with self.assertRaises(ConfigurationError, msg=str(env)):
                load_settings(env)


class SettingsTestCase(unittest.TestCase):
    def test_participant_validation(self):
        settings = Settings()
        for phone in ("0241234567", "0551234567", "0301234567"):
            self.assertTrue(settings.is_valid_participant_id(phone), phone)
        for phone in ("0141234567", "024123456", "02412345678", "", None, 241234567):
            self.assertFalse(settings.is_valid_participant_id(phone), phone)


if __name__ == "__main__":
    unittest.main()
