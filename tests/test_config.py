import pytest

from cyphergraph.config import create_config, load_config, validate_config
from cyphergraph.errors import ValidationError


def test_create_config_applies_defaults():
    config = create_config("neo4j://localhost:7687", "neo4j", "secret")

    assert config.database == "neo4j"
    assert config.default_timeout_ms == 30_000
    assert config.connection_pool_size == 10
    assert config.max_connection_lifetime_ms == 3_600_000


@pytest.mark.parametrize("url", ["bolt://db:7687", "neo4j+s://example.databases.neo4j.io", "bolt+ssc://10.0.0.1:7687"])
def test_accepts_supported_schemes(url):
    assert create_config(url, "neo4j", "secret").url == url


@pytest.mark.parametrize(
    "data",
    [
        {"url": "http://localhost:7474", "user": "neo4j", "password": "secret"},
        {"url": "neo4j://", "user": "neo4j", "password": "secret"},
        {"url": "neo4j://localhost", "user": "", "password": "secret"},
        {"url": "neo4j://localhost", "user": "neo4j", "password": "secret", "default_timeout_ms": 0},
        {"user": "neo4j", "password": "secret"},
    ],
)
def test_invalid_config_raises_domain_validation_error(data):
    with pytest.raises(ValidationError) as exc_info:
        validate_config(data)

    assert exc_info.value.schema == "Neo4jConfig"
    assert "password" not in exc_info.value.raw_data


def test_validate_config_rejects_non_mapping():
    with pytest.raises(ValidationError, match="mapping"):
        validate_config("neo4j://localhost")


def test_unknown_keys_are_ignored():
    config = validate_config({"url": "neo4j://localhost", "user": "u", "password": "p", "extra": 1})

    assert not hasattr(config, "extra")


def test_load_config_layers_file_env_and_overrides(tmp_path):
    path = tmp_path / "cyphergraph.toml"
    path.write_text(
        '[neo4j]\nurl = "bolt://db:7687"\nuser = "neo4j"\npassword = "from-file"\n',
        encoding="utf-8",
    )
    env = {
        "CYPHERGRAPH_NEO4J__PASSWORD": "from-env",
        "CYPHERGRAPH_NEO4J__DEFAULT_TIMEOUT_MS": "5000",
        "UNRELATED": "x",
    }

    config = load_config(config_path=path, env=env, overrides={"database": "movies"})

    assert config.url == "bolt://db:7687"
    assert config.password == "from-env"
    assert config.default_timeout_ms == 5000
    assert config.database == "movies"


def test_load_config_from_env_only():
    env = {
        "CYPHERGRAPH_NEO4J__URL": "neo4j://graph:7687",
        "CYPHERGRAPH_NEO4J__USER": "reader",
        "CYPHERGRAPH_NEO4J__PASSWORD": "pw",
    }

    config = load_config(env=env)

    assert config.user == "reader"


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(config_path=tmp_path / "missing.toml", env={})


def test_load_config_without_sources_is_invalid():
    with pytest.raises(ValidationError):
        load_config(env={})
