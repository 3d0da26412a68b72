"""Tests for the psd_to_elements command line tool."""

import json

import psd_importer
import psd_to_elements
from psd_reader import PSDDocument


def test_cli_writes_elements_json(tmp_path, monkeypatch):
    document = PSDDocument(
        width=200,
        height=200,
        layers=[{"name": "Box", "left": 20, "top": 20, "right": 120, "bottom": 60}],
    )
    monkeypatch.setattr(psd_importer, "read_psd", lambda data: document)
    source = tmp_path / "in.psd"
    source.write_bytes(b"8BPS")
    output = tmp_path / "out.json"

    code = psd_to_elements.main([str(source), "--width", "100", "--height", "100", "--output", str(output)])

    assert code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["summary"]["converted"] == 1
    box = payload["page"]["elements"][0]
    assert (box["x"], box["width"], box["height"]) == (10, 50, 20)


def test_cli_missing_file(tmp_path):
    assert psd_to_elements.main([str(tmp_path / "missing.psd")]) == 1
