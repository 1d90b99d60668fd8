"""Tests for validation module"""
import unittest

from revproxy_cli.validation import validate_hostname, validate_port


class ValidationTests(unittest.TestCase):
    def test_validate_hostname(self):
        # Valid names
        self.assertTrue(validate_hostname("sub.example.com"))
        self.assertTrue(validate_hostname("example.com"))
        self.assertTrue(validate_hostname("my-app.test"))
        self.assertTrue(validate_hostname("abc"))
        self.assertTrue(validate_hostname("a1.b2.c3"))

        # Invalid names
        self.assertFalse(validate_hostname(""))
        self.assertFalse(validate_hostname("a"))
        self.assertFalse(validate_hostname("invalid..url"))
        self.assertFalse(validate_hostname(".example.com"))
        self.assertFalse(validate_hostname("example.com."))
        self.assertFalse(validate_hostname("-app.test"))
        self.assertFalse(validate_hostname("app-.test"))
        self.assertFalse(validate_hostname("my_app.test"))  # underscore
        self.assertFalse(validate_hostname("my app.test"))  # space
        self.assertFalse(validate_hostname("example.com\n"))  # trailing newline

    def test_hostname_reasons(self):
        self.assertEqual(validate_hostname("").reason, "empty")
        self.assertEqual(validate_hostname("a").reason, "too_short")
        self.assertEqual(validate_hostname("ab").reason, "too_short")
        self.assertEqual(validate_hostname("invalid..url").reason, "bad_format")
        self.assertEqual(validate_hostname("example.com\n").reason, "bad_format")
        self.assertEqual(validate_hostname("\nexample.com").reason, "bad_format")
        self.assertIsNone(validate_hostname("sub.example.com").reason)

    def test_hostname_length_limits(self):
        label = "a" * 63
        self.assertTrue(validate_hostname(f"{label}.test"))
        self.assertEqual(validate_hostname(f"{'a' * 64}.test").reason, "bad_format")

        # 4 labels of 63 chars joined by dots = 255 chars
        too_long = ".".join([label] * 4)
        self.assertEqual(validate_hostname(too_long).reason, "too_long")

        # 3 labels of 63 + 1 label of 61 = 253 chars
        longest = ".".join([label, label, label, "a" * 61])
        self.assertEqual(len(longest), 253)
        self.assertTrue(validate_hostname(longest))

    def test_validate_port(self):
        # Valid ports
        self.assertTrue(validate_port(1))
        self.assertTrue(validate_port(3000))
        self.assertTrue(validate_port(65535))

        # Invalid ports
        for port in (0, -1, 65536):
            result = validate_port(port)
            self.assertFalse(result)
            self.assertEqual(result.reason, "out_of_range")

    def test_validate_port_rejects_non_integers(self):
        self.assertFalse(validate_port("8000"))
        self.assertFalse(validate_port(80.0))
        self.assertFalse(validate_port(None))
        self.assertFalse(validate_port(True))

    def test_message_is_set_on_failure(self):
        self.assertEqual(validate_port(0).message, "Port must be a number between 1 and 65535")
        self.assertEqual(validate_hostname("").message, "Host name is required")


if __name__ == "__main__":
    unittest.main()
