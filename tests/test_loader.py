import json
from pathlib import Path

import pytest

from openapi_tsgen.parser.detect import detect_format
from openapi_tsgen.parser.loader import DocumentLoadError, load_document, parse_document

FIXTURES = Path(__file__).parent / "fixtures"


class TestDetectFormat:
    def test_detect_by_suffix(self):
        assert detect_format(FIXTURES / "polymorphism.json") == "json"
        assert detect_format(FIXTURES / "basic.yaml") == "yaml"
        assert detect_format(FIXTURES / "webhooks-servers.yml") == "yaml"

    def test_sniff_json_content(self, tmp_path):
        f = tmp_path / "api.txt"
        f.write_text(json.dumps({"openapi": "3.1.0"}))
        assert detect_format(f) == "json"

    def test_sniff_yaml_content(self, tmp_path):
        f = tmp_path / "api.txt"
        f.write_text("openapi: 3.1.0\npaths: {}\n")
        assert detect_format(f) == "yaml"


class TestLoadDocument:
    def test_load_yaml(self):
        doc = load_document(FIXTURES / "basic.yaml")
        assert doc.openapi == "3.1.1"
        assert list(doc.paths) == ["/ping"]
        assert sorted(doc.components.schemas) == ["Status", "User"]

    def test_integer_status_keys_become_strings(self):
        doc = load_document(FIXTURES / "basic.yaml")
        assert list(doc.paths["/ping"].get.responses) == ["200"]

    def test_load_json(self):
        doc = load_document(FIXTURES / "security.json")
        schemes = doc.components.security_schemes
        assert schemes["ApiKeyAuth"].in_ == "header"
        assert schemes["BearerAuth"].bearer_format == "JWT"
        assert doc.security == [{"ApiKeyAuth": []}]

    def test_explicit_format_overrides_suffix(self, tmp_path):
        f = tmp_path / "api.json"
        f.write_text("openapi: 3.1.0\n")
        doc = load_document(f, fmt="yaml")
        assert doc.openapi == "3.1.0"

    def test_extension_keys_dropped(self):
        doc = parse_document({
            "openapi": "3.1.0",
            "paths": {"x-internal": {"note": "skip"}, "/a": {"get": {"responses": {"x-meta": {}, "200": {}}}}},
        })
        assert list(doc.paths) == ["/a"]
        assert list(doc.paths["/a"].get.responses) == ["200"]

    def test_path_item_ref_and_pointer_sections(self):
        doc = load_document(FIXTURES / "webhooks-servers.yml")
        assert doc.webhooks["user.deleted"].ref == "#/components/pathItems/UserEvent"
        assert "UserEvent" in doc.raw_sections()["pathItems"]

    def test_non_mapping_root(self):
        with pytest.raises(DocumentLoadError, match="not a mapping"):
            parse_document(["openapi"])

    def test_invalid_yaml(self, tmp_path):
        f = tmp_path / "bad.yaml"
        f.write_text("openapi: [3.1\n")
        with pytest.raises(DocumentLoadError, match="cannot parse yaml"):
            load_document(f)

    def test_invalid_structure(self):
        with pytest.raises(DocumentLoadError, match="invalid document"):
            parse_document({"openapi": "3.1.0", "paths": "not-a-mapping"})

    def test_unreadable_bytes(self, tmp_path):
        f = tmp_path / "bad.yaml"
        f.write_bytes(b"openapi: 3.1.0\ninfo: \xff\n")
        with pytest.raises(DocumentLoadError, match="cannot read file"):
            load_document(f)

    def test_unreadable_bytes_while_sniffing(self, tmp_path):
        f = tmp_path / "bad.txt"
        f.write_bytes(b"\xff\xfe")
        with pytest.raises(DocumentLoadError, match="cannot read file"):
            load_document(f)

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentLoadError, match="cannot read file"):
            load_document(tmp_path / "missing.yaml")


class TestMappingKeys:
    def test_scalar_keys_become_strings(self, tmp_path):
        f = tmp_path / "keys.yaml"
        f.write_text(
            "openapi: 3.1.0\n"
            "components:\n"
            "  schemas:\n"
            "    Flags:\n"
            "      type: object\n"
            "      properties:\n"
            "        yes: {type: boolean}\n"
            "        200: {type: string}\n"
            "        name: {type: string}\n"
            "      patternProperties:\n"
            "        1.5: {type: number}\n"
        )
        flags = load_document(f).components.schemas["Flags"]
        assert sorted(flags["properties"]) == ["200", "name", "true"]
        assert list(flags["patternProperties"]) == ["1.5"]

    def test_keys_that_collide_after_conversion(self):
        with pytest.raises(DocumentLoadError, match="duplicate mapping key 'true'"):
            parse_document({"openapi": "3.1.0", "components": {"schemas": {True: {}, "true": {}}}})
