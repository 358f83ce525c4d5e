"""Unit tests for loading WildflyAppServer specs."""

import pytest
from marshmallow import ValidationError
from wildfly.types.models import ConfigSource, WildflyAppServerSpec
from wildfly.types.schemas import WildflyAppServerSpecSchema


def load(**data):
    return WildflyAppServerSpecSchema().load({"nodeCount": 2, "image": "img", **data})


class TestWildflyAppServerSpecSchema:
    def test_minimal(self):
        spec = load()
        assert isinstance(spec, WildflyAppServerSpec)
        assert spec.node_count == 2
        assert spec.image == "img"
        assert spec.application_path == ""
        assert spec.config_source is None
        assert spec.data_sources == []
        assert not spec.config_pinned
        assert not spec.renders_config

    def test_data_source_map_sorted_by_name(self):
        spec = load(
            dataSourceConfig={
                "zeta": {"hostName": "h2", "databaseName": "d2", "jndiName": "j2"},
                "alpha": {"hostName": "h1", "databaseName": "d1", "jndiName": "j1"},
            }
        )
        assert [ds.name for ds in spec.data_sources] == ["alpha", "zeta"]
        assert spec.data_sources[0].host_name == "h1"
        assert spec.data_sources[0].user is None
        assert spec.renders_config

    def test_data_source_list(self):
        spec = load(
            dataSourceConfig=[
                {
                    "name": "b",
                    "hostName": "h",
                    "databaseName": "d",
                    "jndiName": "j",
                    "user": "u",
                    "password": "p",
                }
            ]
        )
        assert spec.data_sources[0].name == "b"
        assert spec.data_sources[0].password == "p"

    def test_data_source_list_without_names(self):
        spec = load(
            dataSourceConfig=[
                {"hostName": "h1", "databaseName": "d1", "jndiName": "java:/jdbc/d1"},
                {"name": "", "hostName": "h2", "databaseName": "d2", "jndiName": "j2"},
                {"name": "reports", "hostName": "h3", "databaseName": "d3", "jndiName": "j3"},
            ]
        )
        assert [ds.name for ds in spec.data_sources] == [
            "datasource-0",
            "datasource-1",
            "reports",
        ]
        assert spec.data_sources[0].jndi_name == "java:/jdbc/d1"
        assert spec.renders_config

    def test_data_source_map_null_entry(self):
        with pytest.raises(ValidationError) as exc_info:
            load(dataSourceConfig={"db": None})
        assert "db" in exc_info.value.messages["dataSourceConfig"]

    def test_data_source_list_invalid_item(self):
        with pytest.raises(ValidationError):
            load(dataSourceConfig=[None])

    def test_null_data_sources(self):
        assert load(dataSourceConfig=None).data_sources == []

    def test_legacy_config_reference(self):
        spec = load(configMapName="legacy", standaloneConfigKey="standalone.xml")
        assert spec.config_source == ConfigSource(name="legacy", key="standalone.xml")
        assert spec.config_pinned

    def test_config_source_wins_over_legacy(self):
        spec = load(
            configSource={"name": "new", "key": "k"},
            configMapName="legacy",
            standaloneConfigKey="standalone.xml",
        )
        assert spec.config_source.name == "new"

    def test_incomplete_legacy_reference_ignored(self):
        assert load(configMapName="legacy").config_source is None

    def test_pinned_config_skips_rendering(self):
        spec = load(
            configSource={"name": "c", "key": "k"},
            dataSourceConfig={"a": {"hostName": "h", "databaseName": "d", "jndiName": "j"}},
        )
        assert not spec.renders_config

    @pytest.mark.parametrize(
        "data",
        [
            {"image": "img"},
            {"nodeCount": 1},
            {"nodeCount": -1, "image": "img"},
            {"nodeCount": 1, "image": "img", "configSource": {"name": "", "key": "k"}},
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(ValidationError):
            WildflyAppServerSpecSchema().load(data)

    def test_unknown_fields_excluded(self):
        spec = load(somethingElse=True)
        assert not hasattr(spec, "something_else")
