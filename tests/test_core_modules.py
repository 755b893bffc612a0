import json
import tempfile
import textwrap
import unittest
from pathlib import Path

from uploadcourse.core.config import (
    CourseDefaults,
    ImportOptions,
    UploadConfig,
    load_upload_config,
    merge_import_options,
)
from uploadcourse.core.errors import DenialReason, InvalidInputError, UploadError
from uploadcourse.core.modes import ImportMode, OutputMode, ResolutionMode, UpdateMode, parse_mode
from uploadcourse.core.provenance import ProvenanceLogger


class ConfigParsingTests(unittest.TestCase):
    def _write_yaml(self, data: str) -> Path:
        tmp = tempfile.NamedTemporaryFile("w", delete=False, suffix=".yaml")
        tmp.write(textwrap.dedent(data))
        tmp.flush()
        tmp.close()
        self.addCleanup(lambda: Path(tmp.name).unlink(missing_ok=True))
        return Path(tmp.name)

    def test_load_upload_config(self) -> None:
        path = self._write_yaml(
            """
            store:
              sqlite_path: outputs/catalog.sqlite
            options:
              mode: Create-Or-Update
              update_mode: data_only
              allow_category_autocreate: true
            defaults:
              category: 3
              lang: en
            report:
              output: TABLE
              provenance_path: outputs/provenance.jsonl
            """
        )
        config = load_upload_config(path)
        self.assertIsInstance(config, UploadConfig)
        self.assertEqual(config.store.sqlite_path, (path.parent / "outputs" / "catalog.sqlite").resolve())
        self.assertEqual(config.options.mode, ImportMode.CREATE_OR_UPDATE)
        self.assertTrue(config.options.can_auto_create_categories())
        self.assertFalse(config.options.is_preview_mode())
        self.assertEqual(config.options.resolution_mode, ResolutionMode.COMMIT)
        self.assertEqual(config.defaults.as_row_values()["lang"], "en")
        self.assertEqual(config.report.output, OutputMode.TABLE)
        self.assertTrue(config.report.provenance_path.is_absolute())

    def test_relative_paths_follow_base_dir(self) -> None:
        path = self._write_yaml(
            """
            store:
              sqlite_path: db/catalog.sqlite
            """
        )
        with tempfile.TemporaryDirectory() as base:
            config = load_upload_config(path, base_dir=Path(base))
            self.assertEqual(config.store.sqlite_path, (Path(base) / "db" / "catalog.sqlite").resolve())

    def test_missing_store_section_is_rejected(self) -> None:
        path = self._write_yaml(
            """
            options:
              mode: create_new
            """
        )
        with self.assertRaises(ValueError):
            load_upload_config(path)

    def test_update_only_requires_an_update_mode(self) -> None:
        path = self._write_yaml(
            """
            store:
              sqlite_path: catalog.sqlite
            options:
              mode: update_only
            """
        )
        with self.assertRaises(ValueError):
            load_upload_config(path)

    def test_merge_import_options_ignores_unset_overrides(self) -> None:
        base = ImportOptions(allow_category_autocreate=True)
        merged = merge_import_options(base, {"preview": True, "mode": None, "update_mode": "data_only"})
        self.assertTrue(merged.preview)
        self.assertTrue(merged.allow_category_autocreate)
        self.assertEqual(merged.mode, ImportMode.CREATE_NEW)
        self.assertEqual(merged.update_mode, UpdateMode.DATA_ONLY)
        self.assertEqual(merged.resolution_mode, ResolutionMode.PREVIEW)

    def test_merge_import_options_wraps_validation_errors(self) -> None:
        with self.assertRaises(ValueError):
            merge_import_options(ImportOptions(), {"mode": "update_only"})

    def test_course_defaults_reject_invalid_category(self) -> None:
        with self.assertRaises(ValueError):
            CourseDefaults(category=0)


class ModeParsingTests(unittest.TestCase):
    def test_parse_mode_normalizes_flags(self) -> None:
        self.assertEqual(parse_mode(ImportMode, "Create-All", default=ImportMode.CREATE_NEW), ImportMode.CREATE_ALL)
        self.assertEqual(parse_mode(UpdateMode, None, default=UpdateMode.NOTHING), UpdateMode.NOTHING)

    def test_parse_mode_lists_valid_options(self) -> None:
        with self.assertRaises(ValueError) as ctx:
            parse_mode(ImportMode, "replace", default=ImportMode.CREATE_NEW)
        self.assertIn("create_or_update", str(ctx.exception))

    def test_import_mode_capabilities(self) -> None:
        self.assertFalse(ImportMode.UPDATE_ONLY.can_create)
        self.assertFalse(ImportMode.CREATE_NEW.can_update)
        self.assertTrue(ImportMode.CREATE_OR_UPDATE.can_update)


class ErrorTaxonomyTests(unittest.TestCase):
    def test_invalid_input_is_a_value_error(self) -> None:
        self.assertTrue(issubclass(InvalidInputError, ValueError))
        self.assertTrue(issubclass(InvalidInputError, UploadError))

    def test_denial_reasons_have_messages(self) -> None:
        self.assertEqual(DenialReason.AUTO_CREATE_DENIED.message, "auto-create not permitted")
        for reason in DenialReason:
            self.assertTrue(reason.message)


class ProvenanceLoggerTests(unittest.TestCase):
    def test_log_appends_jsonl(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "prov.jsonl"
            logger = ProvenanceLogger(path)
            logger.record("row", "ok", line=2, action="created")
            logger.extend([{"stage": "category", "message": "Category created: Science"}])

            lines = path.read_text(encoding="utf-8").splitlines()
            self.assertEqual(len(lines), 2)
            first = json.loads(lines[0])
            self.assertEqual(first["line"], 2)
            self.assertEqual(first["payload"], {"action": "created"})

    def test_disabled_logger_still_normalizes(self) -> None:
        logger = ProvenanceLogger(None)
        event = logger.log({"stage": "bootstrap", "message": "hi"})
        self.assertFalse(logger.enabled)
        self.assertEqual(event.stage, "bootstrap")


if __name__ == "__main__":
    unittest.main()
