"""
Tests for the command-line front end and its vector parser.
"""

import unittest
import os
import sys
import io
import logging
from contextlib import redirect_stderr, redirect_stdout

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fe_cli import main, parse_vector, render_check

logging.basicConfig(level=logging.ERROR)


class TestParseVector(unittest.TestCase):

    def test_valid_vectors(self):
        self.assertEqual(parse_vector("5,128,1,48,3"), (5, 128, 1, 48, 3))
        self.assertEqual(parse_vector(" 7 , 0 "), (7, 0))
        self.assertEqual(parse_vector("42"), (42,))

    def test_malformed_tokens(self):
        for text in ("", "   ", "1,,2", "1,a", "-1,2", "1.5", "1;2"):
            with self.assertRaises(ValueError, msg=text):
                parse_vector(text)

    def test_bound(self):
        self.assertEqual(parse_vector("15,0", bound=16), (15, 0))
        with self.assertRaises(ValueError):
            parse_vector("16,0", bound=16)


class TestMain(unittest.TestCase):

    def run_main(self, argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_single_mode(self):
        code, out, _ = self.run_main(
            ['--modulus-length', '64', '--bound', '16', 'single', '--x', '5,2,9', '--y', '1,0,4'])
        self.assertEqual(code, 0)
        self.assertIn("Decrypted inner product: 41", out)
        self.assertIn("Inner product check OK", out)
        self.assertIn("Master public key: ", out)

    def test_multi_mode(self):
        code, out, _ = self.run_main(
            ['--modulus-length', '64', '--bound', '16', 'multi',
             '--x', '3,1', '--y', '1,1', '--x', '2,4', '--y', '1,1'])
        self.assertEqual(code, 0)
        self.assertIn("Decrypted inner product: 10", out)

    def test_length_mismatch(self):
        code, _, err = self.run_main(
            ['--modulus-length', '64', 'single', '--x', '1,2,3', '--y', '1,2'])
        self.assertEqual(code, 1)
        self.assertIn("same length", err)

    def test_out_of_bound_input(self):
        code, _, err = self.run_main(
            ['--modulus-length', '64', '--bound', '16', 'single', '--x', '1,20', '--y', '1,2'])
        self.assertEqual(code, 1)
        self.assertIn("bound", err)

    def test_infeasible_parameters(self):
        code, _, _ = self.run_main(
            ['--modulus-length', '16', '--bound', '65536', 'single', '--x', '1,2', '--y', '1,2'])
        self.assertEqual(code, 1)

    def test_missing_mode(self):
        with self.assertRaises(SystemExit) as ctx:
            self.run_main([])
        self.assertEqual(ctx.exception.code, 2)

    def test_render_check(self):
        self.assertEqual(render_check(41, 41), "Inner product check OK")
        self.assertEqual(render_check(41, 40), "Inner product check failed: 41 != 40")


if __name__ == "__main__":
    unittest.main()
