from __future__ import annotations

import unittest

from core.template import (
    TemplateError,
    extract_placeholders,
    render,
    render_command,
    validate_placeholders,
)


class RenderTests(unittest.TestCase):
    def test_render_placeholders(self) -> None:
        values = {"source": "/docs/report.org", "target": "/docs/report.tex"}
        self.assertEqual(render("{{source}} -> {{ target }}", values), "/docs/report.org -> /docs/report.tex")

    def test_values_are_stringified(self) -> None:
        self.assertEqual(render("-n{{count}}", {"count": 3}), "-n3")

    def test_text_without_placeholders_is_unchanged(self) -> None:
        self.assertEqual(render("--standalone", {}), "--standalone")

    def test_missing_name(self) -> None:
        with self.assertRaises(TemplateError):
            render("{{absent}}", {"file": "a.tex"})

    def test_braces_in_values_are_kept_verbatim(self) -> None:
        path = "/docs/{{draft}}/report.tex"
        self.assertEqual(render_command(["latexpand", "{{file}}"], file=path), ["latexpand", path])

    def test_backslashes_in_values_are_kept_verbatim(self) -> None:
        self.assertEqual(render("{{file}}", {"file": r"C:\docs\1.tex"}), r"C:\docs\1.tex")


class CommandTemplateTests(unittest.TestCase):
    def test_render_command(self) -> None:
        command = render_command(["latexmk", "-pdflatex={{compiler}}", "{{file}}"], compiler="xelatex", file="a.tex")
        self.assertEqual(command, ["latexmk", "-pdflatex=xelatex", "a.tex"])

    def test_extract_placeholders(self) -> None:
        found = extract_placeholders(["pandoc", "{{source}}", {"out": "{{ target }}"}, ("{{stem}}.tex",)])
        self.assertEqual(found, {"source", "target", "stem"})

    def test_validate_placeholders(self) -> None:
        validate_placeholders(["latexpand", "{{file}}"], ["file"])
        with self.assertRaises(TemplateError) as caught:
            validate_placeholders(["latexpand", "{{path}}"], ["file"])
        self.assertIn("path", str(caught.exception))
        self.assertIn("{{file}}", str(caught.exception))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
