from __future__ import annotations

from pathlib import Path
import tempfile
import textwrap
import unittest

from core.config_loader import (
    find_config_file,
    load_config_file,
    load_merged,
    merge_mappings,
    normalize_string_list,
)


class ConfigLoaderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_supports_toml_json_and_yaml(self) -> None:
        toml_path = self.root / "a.toml"
        toml_path.write_text('[diff]\ntype = "CFONT"\n')
        json_path = self.root / "b.json"
        json_path.write_text('{"compile": {"enabled": false}}')
        yaml_path = self.root / "c.yaml"
        yaml_path.write_text(
            textwrap.dedent(
                """
                flatten:
                    enabled: true
                """
            ).strip()
        )

        self.assertEqual(load_config_file(toml_path), {"diff": {"type": "CFONT"}})
        self.assertEqual(load_config_file(json_path), {"compile": {"enabled": False}})
        self.assertEqual(load_config_file(yaml_path), {"flatten": {"enabled": True}})

    def test_empty_yaml_is_empty_mapping(self) -> None:
        path = self.root / "empty.yml"
        path.write_text("")
        self.assertEqual(load_config_file(path), {})

    def test_unsupported_extension(self) -> None:
        path = self.root / "config.ini"
        path.write_text("[diff]\n")
        with self.assertRaises(ValueError):
            load_config_file(path)

    def test_root_must_be_mapping(self) -> None:
        path = self.root / "list.json"
        path.write_text("[1, 2]")
        with self.assertRaises(TypeError):
            load_config_file(path)

    def test_find_config_file_prefers_toml(self) -> None:
        self.assertIsNone(find_config_file(self.root, "docdiff"))
        (self.root / "docdiff.yaml").write_text("{}\n")
        self.assertEqual(find_config_file(self.root, "docdiff"), self.root / "docdiff.yaml")
        (self.root / "docdiff.toml").write_text("")
        self.assertEqual(find_config_file(self.root, "docdiff"), self.root / "docdiff.toml")

    def test_load_merged_later_files_win(self) -> None:
        first = self.root / "first.toml"
        first.write_text('[diff]\ntype = "CFONT"\nsubtype = "COLOR"\n')
        second = self.root / "second.json"
        second.write_text('{"diff": {"type": "BOLD"}}')

        merged = load_merged([first, second], base={"global": {"log_level": "debug"}})

        self.assertEqual(
            merged,
            {"global": {"log_level": "debug"}, "diff": {"type": "BOLD", "subtype": "COLOR"}},
        )


class MappingHelpersTests(unittest.TestCase):
    def test_merge_mappings_is_deep(self) -> None:
        base = {"compile": {"enabled": True, "compilers": ["pdflatex"]}, "keep": 1}
        overlay = {"compile": {"compilers": ["xelatex"]}}
        merged = merge_mappings(base, overlay)
        self.assertEqual(merged, {"compile": {"enabled": True, "compilers": ["xelatex"]}, "keep": 1})
        self.assertEqual(base["compile"]["compilers"], ["pdflatex"])

    def test_normalize_string_list(self) -> None:
        self.assertEqual(normalize_string_list(None), [])
        self.assertEqual(normalize_string_list("  latexdiff "), ["latexdiff"])
        self.assertEqual(normalize_string_list(["a", " ", "b "]), ["a", "b"])
        with self.assertRaises(TypeError):
            normalize_string_list(["a", 1], field_name="diff.extra_args")
        with self.assertRaises(TypeError):
            normalize_string_list(3)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
