import pytest
from pydantic import TypeAdapter, ValidationError

from openapi_generate.parser.base import (
    ApiKeySecurityScheme,
    HttpSecurityScheme,
    OAuth2SecurityScheme,
    ParsedParameter,
    ParsedSchema,
    ParsedSecurityScheme,
    dump_model,
)


class TestParsedSchema:
    def test_accepts_openapi_spelling(self):
        s = ParsedSchema.model_validate({"$ref": "#/components/schemas/Pet", "minLength": 1})
        assert s.ref == "#/components/schemas/Pet"
        assert s.min_length == 1

    def test_dump_keeps_only_set_keys(self):
        s = ParsedSchema(type="string", max_length=10)
        assert dump_model(s) == {"type": "string", "maxLength": 10}

    def test_explicit_null_default_survives(self):
        s = ParsedSchema(type="string", default=None)
        assert dump_model(s) == {"type": "string", "default": None}

    def test_integer_bounds_stay_integers(self):
        s = ParsedSchema(type="integer", minimum=1, maximum=100)
        dumped = dump_model(s)
        assert dumped["minimum"] == 1
        assert isinstance(dumped["maximum"], int)

    def test_nested_additional_properties(self):
        s = ParsedSchema.model_validate({
            "type": "object",
            "additionalProperties": {"type": "integer"},
        })
        assert isinstance(s.additional_properties, ParsedSchema)
        assert s.additional_properties.type == "integer"

    def test_frozen(self):
        s = ParsedSchema(type="string")
        with pytest.raises(ValidationError):
            s.type = "integer"


class TestParsedParameter:
    def test_location_alias(self):
        p = ParsedParameter.model_validate({
            "name": "limit",
            "in": "query",
            "required": False,
            "schema": {"type": "integer"},
        })
        assert p.location == "query"
        assert p.schema_.type == "integer"
        assert dump_model(p) == {
            "name": "limit",
            "in": "query",
            "required": False,
            "schema": {"type": "integer"},
        }

    def test_rejects_unknown_location(self):
        with pytest.raises(ValidationError):
            ParsedParameter(name="x", location="body", required=False, schema_=ParsedSchema())


class TestSecuritySchemes:
    adapter = TypeAdapter(ParsedSecurityScheme)

    def test_discriminates_api_key(self):
        scheme = self.adapter.validate_python({"type": "apiKey", "name": "X-API-Key", "in": "header"})
        assert isinstance(scheme, ApiKeySecurityScheme)
        assert scheme.location == "header"

    def test_discriminates_http(self):
        scheme = self.adapter.validate_python({"type": "http", "scheme": "bearer"})
        assert isinstance(scheme, HttpSecurityScheme)

    def test_oauth2_defaults_to_empty_flows(self):
        scheme = self.adapter.validate_python({"type": "oauth2"})
        assert isinstance(scheme, OAuth2SecurityScheme)
        assert scheme.flows.implicit is None

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            self.adapter.validate_python({"type": "mutualTLS"})
