"""Agent card metadata types and their JSON wire form."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import MISSING, dataclass, field, fields, is_dataclass
from enum import Enum, auto
from typing import Any, Callable, Optional, Union

PROTOCOL_VERSION = "0.2.5"


class SecuritySchemeType(str, Enum):
    """Kind of security scheme an agent supports."""

    def _generate_next_value_(name, start, count, last_values):  # noqa: N805
        head, *rest = name.lower().split("_")
        return head + "".join(part.capitalize() for part in rest)

    API_KEY = auto()
    HTTP = auto()
    OAUTH2 = auto()
    OPEN_ID_CONNECT = auto()


class SecuritySchemeIn(str, Enum):
    """Where an API key credential is carried."""

    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


def _field(
    json_name: str,
    *,
    omit: bool = False,
    default: Any = None,
    factory: Optional[Callable[[], Any]] = None,
    load: Optional[Callable[[Any], Any]] = None,
) -> Any:
    metadata = {"json": json_name, "omit": omit, "load": load}
    if factory is not None:
        return field(default_factory=factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, tuple, dict)) and not value)


def _dump(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        out: dict[str, Any] = {}
        for f in fields(value):
            item = getattr(value, f.name)
            if f.metadata.get("omit") and _is_empty(item):
                continue
            out[f.metadata.get("json", f.name)] = _dump(item)
        return out
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _dump(item) for key, item in value.items()}
    return value


def _load(cls: type, data: Any) -> Any:
    if not isinstance(data, Mapping):
        raise TypeError(f"{cls.__name__} expects a JSON object, got {type(data).__name__}")
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        key = f.metadata.get("json", f.name)
        if key not in data or data[key] is None:
            continue
        loader = f.metadata.get("load")
        raw = data[key]
        kwargs[f.name] = loader(raw) if loader else raw
    return cls(**kwargs)


def _obj(cls: type) -> Callable[[Any], Any]:
    return lambda raw: _load(cls, raw)


def _list_of(cls: type) -> Callable[[Any], Any]:
    return lambda raw: [_load(cls, item) for item in raw]


def _map_of(cls: type) -> Callable[[Any], Any]:
    return lambda raw: {str(key): _load(cls, item) for key, item in raw.items()}


def _enum(enum_cls: type[Enum]) -> Callable[[Any], Any]:
    def load(raw: Any) -> Any:
        try:
            return enum_cls(raw)
        except ValueError:
            return raw

    return load


def _strings(raw: Any) -> list[str]:
    return list(raw)


def _mapping(raw: Any) -> dict[str, Any]:
    return dict(raw)


def _security(raw: Any) -> list[dict[str, list[str]]]:
    return [{str(name): list(scopes or []) for name, scopes in item.items()} for item in raw]


@dataclass
class OAuthFlow:
    """A single OAuth2 flow configuration."""

    authorization_url: Optional[str] = _field("authorizationUrl", omit=True)
    token_url: str = _field("tokenUrl", default="")
    refresh_url: Optional[str] = _field("refreshUrl", omit=True)
    scopes: dict[str, str] = _field("scopes", factory=dict, load=_mapping)


@dataclass
class OAuthFlows:
    """OAuth2 flow configurations by grant type."""

    authorization_code: Optional[OAuthFlow] = _field(
        "authorizationCode", omit=True, load=_obj(OAuthFlow)
    )
    implicit: Optional[OAuthFlow] = _field("implicit", omit=True, load=_obj(OAuthFlow))
    password: Optional[OAuthFlow] = _field("password", omit=True, load=_obj(OAuthFlow))
    client_credentials: Optional[OAuthFlow] = _field(
        "clientCredentials", omit=True, load=_obj(OAuthFlow)
    )


@dataclass
class SecurityScheme:
    """An authentication scheme supported by the agent."""

    type: Union[SecuritySchemeType, str] = field(
        default=MISSING, metadata={"json": "type", "omit": False, "load": _enum(SecuritySchemeType)}
    )
    description: Optional[str] = _field("description", omit=True)
    name: Optional[str] = _field("name", omit=True)
    in_: Optional[Union[SecuritySchemeIn, str]] = _field(
        "in", omit=True, load=_enum(SecuritySchemeIn)
    )
    scheme: Optional[str] = _field("scheme", omit=True)
    bearer_format: Optional[str] = _field("bearerFormat", omit=True)
    flows: Optional[OAuthFlows] = _field("flows", omit=True, load=_obj(OAuthFlows))
    open_id_connect_url: Optional[str] = _field("openIdConnectUrl", omit=True)


@dataclass
class AgentExtension:
    """An extension the agent supports."""

    uri: str = _field("uri", default="")
    required: Optional[bool] = _field("required", omit=True)
    description: Optional[str] = _field("description", omit=True)
    params: dict[str, Any] = _field("params", omit=True, factory=dict, load=_mapping)


@dataclass
class AgentCapabilities:
    """Capabilities declared by an agent."""

    streaming: Optional[bool] = _field("streaming", omit=True)
    push_notifications: Optional[bool] = _field("pushNotifications", omit=True)
    state_transition_history: Optional[bool] = _field("stateTransitionHistory", omit=True)
    extensions: list[AgentExtension] = _field(
        "extensions", omit=True, factory=list, load=_list_of(AgentExtension)
    )


@dataclass
class AgentSkill:
    """A specific capability or function of the agent."""

    id: str = _field("id", default="")
    name: str = _field("name", default="")
    description: Optional[str] = _field("description", omit=True)
    tags: list[str] = _field("tags", factory=list, load=_strings)
    examples: list[str] = _field("examples", omit=True, factory=list, load=_strings)
    input_modes: list[str] = _field("inputModes", omit=True, factory=list, load=_strings)
    output_modes: list[str] = _field("outputModes", omit=True, factory=list, load=_strings)


@dataclass
class AgentProvider:
    """The organisation that provides the agent."""

    organization: str = _field("organization", default="")
    url: Optional[str] = _field("url", omit=True)


@dataclass
class AgentAuthentication:
    """Authentication mechanism required by the agent."""

    type: str = _field("type", default="")
    required: bool = _field("required", default=False)
    config: Any = _field("config", omit=True)


@dataclass
class AgentInterface:
    """A target URL paired with the transport it speaks."""

    url: str = _field("url", default="")
    transport: str = _field("transport", default="")


@dataclass
class AgentCardSignature:
    """A JWS signature over an agent card."""

    header: dict[str, Any] = _field("header", omit=True, factory=dict, load=_mapping)
    protected: str = _field("protected", default="")
    signature: str = _field("signature", default="")


@dataclass
class AgentCard:
    """Metadata describing an A2A agent."""

    name: str = _field("name", default="")
    description: str = _field("description", default="")
    url: str = _field("url", default="")
    provider: Optional[AgentProvider] = _field("provider", omit=True, load=_obj(AgentProvider))
    icon_url: Optional[str] = _field("iconUrl", omit=True)
    version: str = _field("version", default="")
    documentation_url: Optional[str] = _field("documentationUrl", omit=True)
    capabilities: AgentCapabilities = _field(
        "capabilities", factory=AgentCapabilities, load=_obj(AgentCapabilities)
    )
    security_schemes: dict[str, SecurityScheme] = _field(
        "securitySchemes", omit=True, factory=dict, load=_map_of(SecurityScheme)
    )
    security: list[dict[str, list[str]]] = _field(
        "security", omit=True, factory=list, load=_security
    )
    default_input_modes: list[str] = _field("defaultInputModes", factory=list, load=_strings)
    default_output_modes: list[str] = _field("defaultOutputModes", factory=list, load=_strings)
    skills: list[AgentSkill] = _field("skills", factory=list, load=_list_of(AgentSkill))
    supports_authenticated_extended_card: Optional[bool] = _field(
        "supportsAuthenticatedExtendedCard", omit=True
    )
    preferred_transport: Optional[str] = _field("preferredTransport", omit=True)
    protocol_version: Optional[str] = _field("protocolVersion", omit=True)
    additional_interfaces: list[AgentInterface] = _field(
        "additionalInterfaces", omit=True, factory=list, load=_list_of(AgentInterface)
    )
    signatures: list[AgentCardSignature] = _field(
        "signatures", omit=True, factory=list, load=_list_of(AgentCardSignature)
    )

    def to_dict(self) -> dict[str, Any]:
        """Return the card as a JSON-ready dictionary."""
        return _dump(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AgentCard":
        """Build a card from its JSON object form."""
        return _load(cls, data)