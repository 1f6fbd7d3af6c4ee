from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import NotFoundError
from .interfaces import PublishedNodesProvider

logger = logging.getLogger(__name__)


class PublishedNodesFormatError(ValueError):
    """The document is not a valid published nodes JSON array."""


class _PascalCaseModel(BaseModel):
    # On disk keys are PascalCase; unknown keys are kept so round-trips do not lose them.
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class OpcAuthenticationMode(str, Enum):
    ANONYMOUS = "anonymous"
    USERNAME_PASSWORD = "usernamePassword"


class OpcNodeModel(_PascalCaseModel):
    id: str | None = Field(default=None, alias="Id")
    expanded_node_id: str | None = Field(default=None, alias="ExpandedNodeId")
    display_name: str | None = Field(default=None, alias="DisplayName")
    opc_sampling_interval: int | None = Field(default=None, alias="OpcSamplingInterval", ge=0)
    opc_publishing_interval: int | None = Field(default=None, alias="OpcPublishingInterval", ge=0)
    heartbeat_interval: int | None = Field(default=None, alias="HeartbeatInterval", ge=0)
    skip_first: bool | None = Field(default=None, alias="SkipFirst")

    @model_validator(mode="after")
    def _require_identifier(self) -> "OpcNodeModel":
        if not (self.id or self.expanded_node_id):
            raise ValueError("an OPC node needs Id or ExpandedNodeId")
        return self

    @property
    def node_id(self) -> str:
        return self.id or self.expanded_node_id or ""


class LegacyNodeIdModel(_PascalCaseModel):
    identifier: str = Field(alias="Identifier")


class PublishedNodesEntryModel(_PascalCaseModel):
    """
    One endpoint entry of publishednodes.json:
      {
        "EndpointUrl": "opc.tcp://host:50000",
        "UseSecurity": false,
        "OpcNodes": [ { "Id": "ns=2;s=Temperature", "OpcSamplingInterval": 1000 } ]
      }
    Older files use a single "NodeId": { "Identifier": ... } instead of "OpcNodes".
    """

    endpoint_url: str = Field(alias="EndpointUrl", min_length=1)
    use_security: bool = Field(default=False, alias="UseSecurity")
    opc_authentication_mode: OpcAuthenticationMode | None = Field(default=None, alias="OpcAuthenticationMode")
    opc_authentication_username: str | None = Field(default=None, alias="OpcAuthenticationUsername")
    opc_authentication_password: str | None = Field(default=None, alias="OpcAuthenticationPassword")
    data_set_writer_group: str | None = Field(default=None, alias="DataSetWriterGroup")
    data_set_writer_id: str | None = Field(default=None, alias="DataSetWriterId")
    data_set_publishing_interval: int | None = Field(default=None, alias="DataSetPublishingInterval", ge=0)
    opc_nodes: list[OpcNodeModel] = Field(default_factory=list, alias="OpcNodes")
    node_id: LegacyNodeIdModel | None = Field(default=None, alias="NodeId")

    def all_nodes(self) -> list[OpcNodeModel]:
        nodes = list(self.opc_nodes)
        if self.node_id is not None:
            nodes.append(OpcNodeModel(Id=self.node_id.identifier))
        return nodes


def parse_published_nodes(content: bytes | str) -> list[PublishedNodesEntryModel]:
    """Blank content means no nodes configured."""
    try:
        text = content.decode("utf-8-sig") if isinstance(content, bytes) else content
    except UnicodeDecodeError as e:
        raise PublishedNodesFormatError(f"published nodes document is not valid UTF-8: {e}") from e
    if not text.strip():
        return []
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise PublishedNodesFormatError(f"published nodes document is not valid JSON: {e}") from e
    if not isinstance(raw, list):
        raise PublishedNodesFormatError("published nodes document must be a JSON array")
    entries: list[PublishedNodesEntryModel] = []
    for index, item in enumerate(raw):
        try:
            entries.append(PublishedNodesEntryModel.model_validate(item))
        except ValidationError as e:
            raise PublishedNodesFormatError(f"published nodes entry {index} is invalid: {e}") from e
    return entries


def dump_published_nodes(entries: Iterable[PublishedNodesEntryModel]) -> bytes:
    doc: list[dict[str, Any]] = [e.model_dump(mode="json", by_alias=True, exclude_none=True) for e in entries]
    return (json.dumps(doc, indent=2) + "\n").encode("utf-8")


class PublishedNodesStore:
    """Typed view of the published nodes document on top of any provider."""

    def __init__(self, provider: PublishedNodesProvider):
        self._provider = provider

    @property
    def provider(self) -> PublishedNodesProvider:
        return self._provider

    def load_entries(self) -> list[PublishedNodesEntryModel]:
        try:
            content = self._provider.read()
        except NotFoundError:
            logger.debug("PUBLISHED NODES LOAD: %s missing; no nodes configured", self._provider.locator)
            return []
        return parse_published_nodes(content)

    def save_entries(self, entries: Iterable[PublishedNodesEntryModel]) -> None:
        self._provider.write(dump_published_nodes(entries))
