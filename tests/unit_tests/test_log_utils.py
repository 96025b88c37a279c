"""
Unit tests for logging utilities.
"""

import logging
import os
import tempfile
import unittest

from log_utils import setup_logging


class TestLogUtils(unittest.TestCase):
    """Test logging utilities."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.log_file = os.path.join(self.tmpdir.name, "cluster-upgrade.log")

    def test_setup_logging_default(self):
        """Test default logging setup."""
        logger = setup_logging(log_file=self.log_file)
        self.assertIsInstance(logger, logging.Logger)

    def test_setup_logging_verbose(self):
        """Test verbose logging setup."""
        logger = setup_logging(verbose=True, log_file=self.log_file)
        self.assertIsInstance(logger, logging.Logger)

    def test_kubernetes_client_quiet(self):
        setup_logging(verbose=True, log_file=self.log_file)
        self.assertEqual(logging.getLogger("kubernetes").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
