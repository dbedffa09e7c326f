"""Tests for top-level package lazy exports."""

from __future__ import annotations

import unittest

import ai_playground


class PackageExportTests(unittest.TestCase):
    """Ensure __getattr__ and exported symbols behave as expected."""

    def test_lazy_exports_resolve_known_symbols(self) -> None:
        self.assertTrue(callable(ai_playground.load_config))
        self.assertTrue(callable(ai_playground.ensure_config_dir))
        self.assertTrue(callable(ai_playground.validate_request))
        self.assertTrue(callable(ai_playground.assemble))
        self.assertTrue(callable(ai_playground.build_pipeline))
        for name in ai_playground.__all__:
            self.assertIsNotNone(getattr(ai_playground, name))

    def test_unknown_symbol_raises_attribute_error(self) -> None:
        with self.assertRaises(AttributeError):
            getattr(ai_playground, "THIS_DOES_NOT_EXIST")


if __name__ == "__main__":
    unittest.main()
