# -*- coding: utf-8 -*-
"""
Tests for the command line entry point.
"""
import io
import json
from unittest.mock import patch

import pytest

from newsletter_parser.__main__ import main


@patch("newsletter_parser.__main__.setup_logging")
class TestCli:
    """Tests for python -m newsletter_parser."""

    def test_clean_command(self, mock_logging, tmp_path, capsys):
        source = tmp_path / "newsletter.html"
        source.write_text("<p>Hi</p><script>x()</script>", encoding="utf-8")

        assert main(["clean", str(source)]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["cleanedContent"] == "<p>Hi</p>"
        assert data["removedItems"][0]["ruleId"] == "strip-script-blocks"
        mock_logging.assert_called_once()

    def test_parse_command_with_footnotes(self, mock_logging, tmp_path, capsys):
        source = tmp_path / "newsletter.html"
        source.write_text('Visit <a href="https://example.com">us</a>.', encoding="utf-8")

        assert main(["parse", str(source), "--footnotes"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["steps"][0]["stepName"] == "footnote-links"
        assert "[1]" in data["finalOutput"]

    def test_preview_from_stdin(self, mock_logging, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("<p>Hello world</p>"))

        assert main(["preview", "-"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["textContent"] == "Hello world"
        assert data["previewText"] == "Hello world"
        assert data["wordCount"] == 2

    def test_command_required(self, mock_logging):
        with pytest.raises(SystemExit):
            main([])
