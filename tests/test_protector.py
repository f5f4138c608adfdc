"""
Tests for the built-in keyed protector and factory loading.
"""

import string

import pytest

from maskstream.anonymize.protector import (
    KeyedFormatProtector,
    ProtectionConfig,
    Protector,
    keyed_protector_factory,
    load_protector_factory,
)


@pytest.fixture
def config():
    return ProtectionConfig(identity="svc-ingest", shared_secret="top-secret")


class TestKeyedFormatProtector:
    def test_preserves_shape(self, config):
        protector = keyed_protector_factory("cc", config)
        out = protector.protect("4111-1111-1111-1111")

        assert len(out) == len("4111-1111-1111-1111")
        assert out[4] == out[9] == out[14] == "-"
        assert all(ch in string.digits for ch in out.replace("-", ""))

    def test_preserves_letter_case(self, config):
        out = keyed_protector_factory("name", config).protect("Ada Lovelace")
        assert out[0] in string.ascii_uppercase
        assert out[3] == " "
        assert out[4] in string.ascii_uppercase
        assert all(ch in string.ascii_lowercase for ch in out[5:])

    def test_deterministic_for_same_key(self, config):
        a = keyed_protector_factory("cc", config)
        b = keyed_protector_factory("cc", config)
        assert a.protect("1234567890") == b.protect("1234567890")

    def test_format_tag_changes_output(self, config):
        cc = keyed_protector_factory("cc", config).protect("1234567890123456")
        ssn = keyed_protector_factory("ssn", config).protect("1234567890123456")
        assert cc != ssn

    def test_secret_changes_output(self, config):
        other = ProtectionConfig(identity="svc-ingest", shared_secret="another")
        value = "1234567890123456"
        assert keyed_protector_factory("cc", config).protect(value) != keyed_protector_factory("cc", other).protect(
            value
        )

    def test_long_values_are_fully_covered(self, config):
        value = "9" * 200
        out = keyed_protector_factory("cc", config).protect(value)
        assert len(out) == 200
        assert out.isdigit()

    def test_satisfies_protocol(self, config):
        assert isinstance(keyed_protector_factory("cc", config), Protector)

    def test_repr_hides_key(self):
        protector = KeyedFormatProtector("cc", b"\x01" * 32)
        assert "\\x01" not in repr(protector)


class TestProtectionConfig:
    def test_from_dict_collects_unknown_keys_as_options(self):
        cfg = ProtectionConfig.from_dict(
            {"factory": "keyed", "identity": "me", "shared_secret": "s", "region": "eu", "retries": 3}
        )
        assert cfg.identity == "me"
        assert cfg.options == {"region": "eu", "retries": 3}

    def test_repr_hides_secret(self, config):
        assert "top-secret" not in repr(config)


class TestLoadProtectorFactory:
    @pytest.mark.parametrize("spec", [None, "", "keyed"])
    def test_builtin(self, spec):
        assert load_protector_factory(spec) is keyed_protector_factory

    def test_import_path(self):
        factory = load_protector_factory("conftest:tagging_factory")
        assert factory("cc", ProtectionConfig()).protect("ab") == "cc(ba)"

    @pytest.mark.parametrize(
        "spec",
        ["vault", "no_such_module_xyz:factory", "conftest:missing_attribute", "conftest:"],
    )
    def test_unresolvable(self, spec):
        with pytest.raises(ValueError):
            load_protector_factory(spec)
