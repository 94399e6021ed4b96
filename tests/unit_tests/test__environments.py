import pytest

from devile_deploy.config.environments import (
    DEFAULT_NAME_TAGS,
    build_name_tag_table,
    get_overlay,
    lookup_name_tags,
)
from devile_deploy.exceptions import ConfigurationError, UnknownEnvironmentError
from tests.consts import APP_SERVER_NAME_TAG, BASTION_NAME_TAG


def test_default_table_has_staging_tags():
    tags = lookup_name_tags(DEFAULT_NAME_TAGS, "staging")

    assert tags.bastion == (BASTION_NAME_TAG,)
    assert tags.app_server == (APP_SERVER_NAME_TAG,)


def test_name_tag_table_is_immutable():
    with pytest.raises(TypeError):
        DEFAULT_NAME_TAGS["production"] = DEFAULT_NAME_TAGS["staging"]


def test_built_table_keeps_tag_order():
    table = build_name_tag_table({
        "staging": {"bastion": ["B2", "B1"], "app_server": ["A3", "A1", "A2"]},
    })

    assert table["staging"].app_server == ("A3", "A1", "A2")


def test_unknown_environment_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        lookup_name_tags(DEFAULT_NAME_TAGS, "production")


def test_staging_overlay():
    overlay = get_overlay("staging")

    assert overlay.rails_env == "staging"
    assert overlay.branch == "master"


def test_unknown_overlay():
    with pytest.raises(UnknownEnvironmentError):
        get_overlay("production")
