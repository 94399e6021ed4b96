"""
Per-environment overlays and the EC2 name-tag table.

An overlay layers environment specific values (branch, rails env) on top of
the shared deployment descriptor. The name-tag table tells the instance
resolver which EC2 ``Name`` tags identify the bastion and the application
servers of each environment.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

from devile_deploy.exceptions import UnknownEnvironmentError

BASTION_ROLE = "bastion"
APP_SERVER_ROLE = "app_server"


@dataclass(frozen=True)
class RoleNameTags:
    """EC2 Name tag values for each role in one environment."""
    bastion: Tuple[str, ...]
    app_server: Tuple[str, ...]


NameTagTable = Mapping[str, RoleNameTags]


def build_name_tag_table(entries: Mapping[str, Mapping[str, list]]) -> NameTagTable:
    """Build an immutable name-tag table from plain ``{env: {role: [tags]}}`` data."""
    table = {}
    for env_name, roles in entries.items():
        table[env_name] = RoleNameTags(
            bastion=tuple(roles[BASTION_ROLE]),
            app_server=tuple(roles[APP_SERVER_ROLE]),
        )
    return MappingProxyType(table)


# environment name => AWS Name tag(s) for that environment
DEFAULT_NAME_TAGS: NameTagTable = build_name_tag_table({
    "staging": {
        BASTION_ROLE: ["StagingDevileProjectAutoscalingBastion"],
        APP_SERVER_ROLE: ["StagingDevileProjectAutoscalingAppServer"],
    },
})


def lookup_name_tags(table: NameTagTable, env_name: str) -> RoleNameTags:
    """Return the tags for ``env_name`` or raise ``UnknownEnvironmentError``."""
    try:
        return table[env_name]
    except KeyError:
        raise UnknownEnvironmentError(env_name, known=list(table)) from None


@dataclass(frozen=True)
class EnvironmentOverlay:
    """Deployment target configuration layered on the shared settings."""
    name: str
    rails_env: str
    branch: str = "master"


OVERLAYS: Mapping[str, EnvironmentOverlay] = MappingProxyType({
    "staging": EnvironmentOverlay(name="staging", rails_env="staging", branch="master"),
})


def get_overlay(name: str) -> EnvironmentOverlay:
    """Get the overlay registered for ``name``."""
    try:
        return OVERLAYS[name]
    except KeyError:
        raise UnknownEnvironmentError(name, known=list(OVERLAYS)) from None
