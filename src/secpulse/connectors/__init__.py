"""Connector registry mapping implementation keys to lazily imported class paths."""

from secpulse.errors.exceptions import UnknownConnectorError
from secpulse.models.enums import ConnectorType

AVAILABLE_CONNECTORS: dict[str, str] = {
    "crowdstrike": "secpulse.connectors.crowdstrike.CrowdStrikeConnector",
    "servicenow": "secpulse.connectors.servicenow.ServiceNowConnector",
    "splunk": "secpulse.connectors.splunk.SplunkConnector",
}

# Implementation keys that may serve each declared connector type.
TYPE_HINTS: dict[ConnectorType, tuple[str, ...]] = {
    ConnectorType.SIEM: ("splunk",),
    ConnectorType.EDR: ("crowdstrike",),
    ConnectorType.CMDB: ("servicenow",),
    ConnectorType.TICKETING: ("servicenow",),
    ConnectorType.VULNERABILITY_SCANNER: (),
}


def import_connector(dotted_path: str):
    """Import a connector class from its dotted module path."""
    import importlib

    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def resolve_implementation(connector_type, name: str, implementation: str | None = None) -> str:
    """Pick the implementation key for a config.

    An explicit *implementation* wins when it is legal for the type; otherwise
    the first legal key contained in the lower-cased display name is used.
    """
    try:
        legal = TYPE_HINTS[ConnectorType(connector_type)]
    except ValueError:
        raise UnknownConnectorError(str(connector_type), name) from None

    if implementation:
        key = implementation.strip().lower()
        if key in legal and key in AVAILABLE_CONNECTORS:
            return key
        raise UnknownConnectorError(str(connector_type), f"{name} (implementation={implementation})")

    lowered = name.lower()
    for key in legal:
        if key in lowered:
            return key
    raise UnknownConnectorError(str(connector_type), name)
