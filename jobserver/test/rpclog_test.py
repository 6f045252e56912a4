import unittest

from jobserver.rpclog import logged


class Handler:
    @logged
    def echo(self, value):
        return value

    @logged
    def fail(self, value):
        raise KeyError(value)


class TestLogged(unittest.TestCase):
    def test_success_logged_at_debug(self):
        with self.assertLogs("jobserver.rpclog", level="DEBUG") as logs:
            self.assertEqual(Handler().echo("abc"), "abc")
        self.assertEqual(len(logs.records), 1)
        self.assertEqual(logs.records[0].levelname, "DEBUG")
        self.assertIn("Handler.echo('abc',) => 'abc'", logs.output[0])

    def test_failure_logged_and_reraised(self):
        with self.assertLogs("jobserver.rpclog", level="DEBUG") as logs:
            with self.assertRaises(KeyError):
                Handler().fail("abc")
        self.assertEqual(logs.records[0].levelname, "ERROR")
        self.assertIn("Handler.fail('abc',) => KeyError", logs.output[0])

    def test_wraps(self):
        self.assertEqual(Handler.echo.__name__, "echo")


if __name__ == "__main__":
    unittest.main()
