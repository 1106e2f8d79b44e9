"""Content Generators: composable XML fragments for template parameters.

A Content Generator renders one typed substructure of a request body
(a list of hosts, a set of credentials, an alert tree) to XML markup, and
can read the same substructure back from a parsed element. Every variant
renders deterministically in insertion order and escapes every value it
places into an attribute or text node.

Variants:
- StringContent: pre-escaped leaf, produced by ``TemplateRequest.set``
- ScalarListGenerator: one element per value (text or single attribute)
- AttributeRecordGenerator: one element per record, fixed attribute list
- KeyValueTableGenerator: ordered key/value pairs
- ElementGenerator / CompositeGenerator: trees and concatenations of the above

Typed builders (AlertsGenerator, SiloAccessGenerator, MerchantGenerator,
OrganizationGenerator, DBExportGenerator) keep a domain-shaped model and
render it through ElementGenerator trees. BaselineGenerator and
TemplateIDGenerator render nothing until given a value.

``parse(element)`` takes the element that *contains* the rendered markup
(for top-level fragments, see ``xml_utils.parse_fragment``) and replaces
the generator's content. It is test and fixture support: it tolerates
missing attributes and only raises GeneratorParseError when the element
shape is wrong.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Protocol, Self, runtime_checkable

from lxml import etree

from nexpose_api.errors import ConfigurationError, GeneratorParseError
from nexpose_api.xml_utils import to_wire_text, xml_escape


@runtime_checkable
class ContentGenerator(Protocol):
    """Capability shared by every template parameter value."""

    def render(self) -> str:
        """Return final XML markup for this fragment."""
        ...

    def parse(self, element: etree._Element) -> Self:
        """Replace this generator's content with what *element* holds."""
        ...


# ---------------------------------------------------------------------------
# Rendering helpers
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    """Wire text for *value*, escaped; ``None`` renders as empty."""
    return xml_escape(to_wire_text(value)) or ""


def _attributes(pairs: Iterable[tuple[str, Any]]) -> str:
    return "".join(f' {name}="{_text(value)}"' for name, value in pairs)


def _empty_element(tag: str, pairs: Iterable[tuple[str, Any]] = ()) -> str:
    return f"<{tag}{_attributes(pairs)}/>"


def _wrap(wrapper: str | None, body: str) -> str:
    if wrapper is None:
        return body
    return f"<{wrapper}>{body}</{wrapper}>"


def _locate(element: etree._Element, tag: str | None) -> etree._Element | None:
    """Find the node holding the content: *element* itself or its *tag* child."""
    if tag is None or element.tag == tag:
        return element
    return element.find(tag)


def _leaf_text(element: etree._Element) -> str:
    """Text content of a leaf element; nested elements are a shape error."""
    if len(element):
        raise GeneratorParseError(
            f"Expected text-only <{element.tag}>, found child <{element[0].tag}>"
        )
    return element.text or ""


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------


@dataclass
class StringContent:
    """A leaf holding markup that has already been escaped."""

    value: str | None = ""

    def render(self) -> str:
        return self.value or ""

    def parse(self, element: etree._Element) -> Self:
        self.value = xml_escape(_leaf_text(element))
        return self

    def __str__(self) -> str:
        return self.render()


@dataclass
class ScalarListGenerator:
    """One element per value.

    With ``attribute`` unset each value is the element's text
    (``<host>a</host>``); otherwise it is that attribute
    (``<site id="1"/>``). ``wrapper`` encloses the whole list in one element.
    """

    tag: str
    attribute: str | None = None
    wrapper: str | None = None
    values: list[Any] = field(default_factory=list)

    def add(self, *values: Any) -> Self:
        self.values.extend(values)
        return self

    def render(self) -> str:
        if self.attribute is None:
            body = "".join(f"<{self.tag}>{_text(v)}</{self.tag}>" for v in self.values)
        else:
            body = "".join(_empty_element(self.tag, [(self.attribute, v)]) for v in self.values)
        return _wrap(self.wrapper, body)

    def parse(self, element: etree._Element) -> Self:
        container = _locate(element, self.wrapper)
        values: list[Any] = []
        if container is not None:
            for child in container.findall(self.tag):
                if self.attribute is None:
                    values.append(_leaf_text(child))
                else:
                    values.append(child.get(self.attribute, ""))
        self.values = values
        return self

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class AttributeRecordGenerator:
    """One element per record with a fixed, ordered attribute list.

    Every declared field is emitted for every record, in declaration
    order; a field the record does not supply renders as ``""``.
    """

    tag: str
    fields: tuple[str, ...]
    wrapper: str | None = None
    records: list[dict[str, Any]] = field(default_factory=list)

    def add(self, record: Mapping[str, Any] | None = None, **values: Any) -> Self:
        """Append a record.

        Field names that are not Python identifiers (``site-id``) go in
        *record*; the rest may be keywords. Underscores in keywords are
        not translated.

        Raises:
            ConfigurationError: If a key is not one of ``fields``.
        """
        merged = dict(record or {})
        merged.update(values)
        unknown = [k for k in merged if k not in self.fields]
        if unknown:
            raise ConfigurationError(
                f"Unknown attribute(s) {unknown} for <{self.tag}>; "
                f"expected {list(self.fields)}"
            )
        self.records.append(merged)
        return self

    def render(self) -> str:
        body = "".join(
            _empty_element(self.tag, [(f, record.get(f)) for f in self.fields])
            for record in self.records
        )
        return _wrap(self.wrapper, body)

    def parse(self, element: etree._Element) -> Self:
        container = _locate(element, self.wrapper)
        records = []
        if container is not None:
            for child in container.findall(self.tag):
                records.append({f: child.get(f, "") for f in self.fields})
        self.records = records
        return self

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class KeyValueTableGenerator:
    """Ordered key/value pairs, e.g. ``<StorageProperty key="k" value="v"/>``.

    With ``value_attribute`` unset the value is the element's text
    (``<param name="k">v</param>``).
    """

    tag: str
    key_attribute: str = "key"
    value_attribute: str | None = "value"
    wrapper: str | None = None
    entries: dict[str, Any] = field(default_factory=dict)

    def set(self, key: str, value: Any) -> Self:
        self.entries[key] = value
        return self

    def render(self) -> str:
        parts = []
        for key, value in self.entries.items():
            if self.value_attribute is None:
                attrs = _attributes([(self.key_attribute, key)])
                parts.append(f"<{self.tag}{attrs}>{_text(value)}</{self.tag}>")
            else:
                parts.append(
                    _empty_element(
                        self.tag, [(self.key_attribute, key), (self.value_attribute, value)]
                    )
                )
        return _wrap(self.wrapper, "".join(parts))

    def parse(self, element: etree._Element) -> Self:
        container = _locate(element, self.wrapper)
        entries: dict[str, Any] = {}
        if container is not None:
            for child in container.findall(self.tag):
                key = child.get(self.key_attribute, "")
                if self.value_attribute is None:
                    entries[key] = _leaf_text(child)
                else:
                    entries[key] = child.get(self.value_attribute, "")
        self.entries = entries
        return self

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class ElementGenerator:
    """A single element with attributes, optional text, and child generators.

    Attributes render in insertion order. Children render after the text,
    in order; each child may be any Content Generator, so trees nest.
    """

    tag: str
    attributes: dict[str, Any] = field(default_factory=dict)
    children: list[ContentGenerator] = field(default_factory=list)
    text: Any = None

    def append(self, child: ContentGenerator) -> Self:
        self.children.append(child)
        return self

    def render(self) -> str:
        attrs = _attributes(self.attributes.items())
        body = _text(self.text) + "".join(child.render() for child in self.children)
        if not body:
            return f"<{self.tag}{attrs}/>"
        return f"<{self.tag}{attrs}>{body}</{self.tag}>"

    def parse(self, element: etree._Element) -> Self:
        node = _locate(element, self.tag)
        if node is None:
            raise GeneratorParseError(f"Expected <{self.tag}> in <{element.tag}>")
        self.attributes = dict(node.attrib)
        self.text = node.text
        children: list[ContentGenerator] = []
        for child in node:
            if isinstance(child.tag, str):
                children.append(ElementGenerator(child.tag).parse(child))
            # Text between or after children
            if child.tail:
                children.append(StringContent(xml_escape(child.tail)))
        self.children = children
        return self


@dataclass
class CompositeGenerator:
    """Concatenation of child generators; parse fans out to every child."""

    children: list[ContentGenerator] = field(default_factory=list)

    def append(self, child: ContentGenerator) -> Self:
        self.children.append(child)
        return self

    def render(self) -> str:
        return "".join(child.render() for child in self.children)

    def parse(self, element: etree._Element) -> Self:
        for child in self.children:
            child.parse(element)
        return self


# ---------------------------------------------------------------------------
# Site alerts (composite)
# ---------------------------------------------------------------------------


@dataclass
class ScanFilter:
    scan_start: Any = None
    scan_stop: Any = None
    scan_failed: Any = None


@dataclass
class VulnFilter:
    severity_threshold: Any = None
    confirmed: Any = None
    unconfirmed: Any = None


@dataclass
class SMTPAlert:
    sender: Any = None
    server: Any = None
    port: Any = None
    limit_text: Any = None
    recipients: ContentGenerator = field(default_factory=lambda: recipients_generator())


@dataclass
class SNMPAlert:
    community: Any = None
    server: Any = None
    port: Any = None


@dataclass
class SysLogAlert:
    server: Any = None
    port: Any = None


AlertPayload = SMTPAlert | SNMPAlert | SysLogAlert


@dataclass
class Alert:
    """One site alert. ``payload`` is the single delivery channel."""

    name: Any = None
    enabled: Any = None
    max_alerts: Any = None
    scan_filter: ScanFilter = field(default_factory=ScanFilter)
    vuln_filter: VulnFilter = field(default_factory=VulnFilter)
    payload: AlertPayload | None = None


def _payload_element(payload: AlertPayload) -> ElementGenerator:
    if isinstance(payload, SMTPAlert):
        return ElementGenerator(
            "smtpAlert",
            {
                "sender": payload.sender,
                "server": payload.server,
                "port": payload.port,
                "limitText": payload.limit_text,
            },
            [payload.recipients],
        )
    if isinstance(payload, SNMPAlert):
        return ElementGenerator(
            "snmpAlert",
            {"community": payload.community, "server": payload.server, "port": payload.port},
        )
    return ElementGenerator("sysLogAlert", {"server": payload.server, "port": payload.port})


_PAYLOAD_TAGS = ("smtpAlert", "snmpAlert", "sysLogAlert")


def _attributes_of(node: etree._Element | None) -> dict[str, str]:
    return dict(node.attrib) if node is not None else {}


def _payload_from_element(node: etree._Element) -> AlertPayload:
    if node.tag == "smtpAlert":
        return SMTPAlert(
            sender=node.get("sender", ""),
            server=node.get("server", ""),
            port=node.get("port", ""),
            limit_text=node.get("limitText", ""),
            recipients=recipients_generator().parse(node),
        )
    if node.tag == "snmpAlert":
        return SNMPAlert(
            community=node.get("community", ""),
            server=node.get("server", ""),
            port=node.get("port", ""),
        )
    return SysLogAlert(server=node.get("server", ""), port=node.get("port", ""))


@dataclass
class AlertsGenerator:
    """Renders ``<Alert>`` trees for a site configuration."""

    alerts: list[Alert] = field(default_factory=list)

    def add(self, alert: Alert) -> Self:
        self.alerts.append(alert)
        return self

    def to_element(self, alert: Alert) -> ElementGenerator:
        scan = alert.scan_filter
        vuln = alert.vuln_filter
        node = ElementGenerator(
            "Alert",
            {"name": alert.name, "enabled": alert.enabled, "maxAlerts": alert.max_alerts},
            [
                ElementGenerator(
                    "scanFilter",
                    {
                        "scanStart": scan.scan_start,
                        "scanStop": scan.scan_stop,
                        "scanFailed": scan.scan_failed,
                    },
                ),
                ElementGenerator(
                    "vulnFilter",
                    {
                        "severityThreshold": vuln.severity_threshold,
                        "confirmed": vuln.confirmed,
                        "unconfirmed": vuln.unconfirmed,
                    },
                ),
            ],
        )
        if alert.payload is not None:
            node.append(_payload_element(alert.payload))
        return node

    def render(self) -> str:
        return "".join(self.to_element(alert).render() for alert in self.alerts)

    def parse(self, element: etree._Element) -> Self:
        alerts = []
        for node in element.findall("Alert"):
            payloads = [child for child in node if child.tag in _PAYLOAD_TAGS]
            if len(payloads) > 1:
                raise GeneratorParseError(
                    f"Alert '{node.get('name', '')}' has {len(payloads)} payloads; "
                    "expected at most one of smtpAlert, snmpAlert, sysLogAlert"
                )
            scan = _attributes_of(node.find("scanFilter"))
            vuln = _attributes_of(node.find("vulnFilter"))
            alerts.append(
                Alert(
                    name=node.get("name", ""),
                    enabled=node.get("enabled", ""),
                    max_alerts=node.get("maxAlerts", ""),
                    scan_filter=ScanFilter(
                        scan_start=scan.get("scanStart", ""),
                        scan_stop=scan.get("scanStop", ""),
                        scan_failed=scan.get("scanFailed", ""),
                    ),
                    vuln_filter=VulnFilter(
                        severity_threshold=vuln.get("severityThreshold", ""),
                        confirmed=vuln.get("confirmed", ""),
                        unconfirmed=vuln.get("unconfirmed", ""),
                    ),
                    payload=_payload_from_element(payloads[0]) if payloads else None,
                )
            )
        self.alerts = alerts
        return self


# ---------------------------------------------------------------------------
# Multi-tenant silo access (composite)
# ---------------------------------------------------------------------------


@dataclass
class SiloAccess:
    silo_id: Any = None
    role_name: Any = None
    all_groups: Any = None
    all_sites: Any = None
    default_silo: Any = None
    allowed_groups: list[Any] = field(default_factory=list)
    allowed_sites: list[Any] = field(default_factory=list)


@dataclass
class SiloAccessGenerator:
    """Renders ``<SiloAccesses>`` for multi-tenant user create/update."""

    accesses: list[SiloAccess] = field(default_factory=list)

    def add(self, access: SiloAccess) -> Self:
        self.accesses.append(access)
        return self

    def to_element(self, access: SiloAccess) -> ElementGenerator:
        return ElementGenerator(
            "SiloAccess",
            {
                "all-groups": access.all_groups,
                "all-sites": access.all_sites,
                "default-silo": access.default_silo,
                "role-name": access.role_name,
                "silo-id": access.silo_id,
            },
            [
                allowed_groups_generator(access.allowed_groups),
                allowed_sites_generator(access.allowed_sites),
            ],
        )

    def render(self) -> str:
        # An empty list still renders the wrapper
        return _wrap("SiloAccesses", "".join(self.to_element(a).render() for a in self.accesses))

    def parse(self, element: etree._Element) -> Self:
        container = _locate(element, "SiloAccesses")
        accesses = []
        if container is not None:
            for node in container.findall("SiloAccess"):
                accesses.append(
                    SiloAccess(
                        silo_id=node.get("silo-id", ""),
                        role_name=node.get("role-name", ""),
                        all_groups=node.get("all-groups", ""),
                        all_sites=node.get("all-sites", ""),
                        default_silo=node.get("default-silo", ""),
                        allowed_groups=allowed_groups_generator().parse(node).values,
                        allowed_sites=allowed_sites_generator().parse(node).values,
                    )
                )
        self.accesses = accesses
        return self


# ---------------------------------------------------------------------------
# Silo merchant and organization contacts
# ---------------------------------------------------------------------------


@dataclass
class ContactAddress:
    city: Any = None
    country: Any = None
    line1: Any = None
    line2: Any = None
    state: Any = None
    zip: Any = None


_ADDRESS_ATTRIBUTES = (
    ("city", "city"),
    ("country", "country"),
    ("line1", "line1"),
    ("line2", "line2"),
    ("state", "state"),
    ("zip", "zip"),
)


def _address_element(address: ContactAddress) -> ElementGenerator:
    return ElementGenerator(
        "Address", {attr: getattr(address, name) for name, attr in _ADDRESS_ATTRIBUTES}
    )


def _address_from_element(node: etree._Element) -> ContactAddress | None:
    found = node.find("Address")
    if found is None:
        return None
    return ContactAddress(**{name: found.get(attr, "") for name, attr in _ADDRESS_ATTRIBUTES})


# (field, attribute) pairs shared by merchants and organizations, in wire order
_CONTACT_ATTRIBUTES = (
    ("company", "company"),
    ("email_address", "email-address"),
    ("first_name", "first-name"),
    ("last_name", "last-name"),
    ("phone_number", "phone-number"),
    ("title", "title"),
)

_MERCHANT_ATTRIBUTES = (
    ("acquirer_relationship", "acquirer-relationship"),
    ("agent_relationship", "agent-relationship"),
    ("ecommerce", "ecommerce"),
    ("grocery", "grocery"),
    ("mail_order", "mail-order"),
    ("payment_application", "payment-application"),
    ("payment_version", "payment-version"),
    ("petroleum", "petroleum"),
    ("retail", "retail"),
    ("telecommunication", "telecommunication"),
    ("travel", "travel"),
) + _CONTACT_ATTRIBUTES


@dataclass
class PCIMerchant:
    """PCI merchant details of a silo."""

    acquirer_relationship: Any = None
    agent_relationship: Any = None
    ecommerce: Any = None
    grocery: Any = None
    mail_order: Any = None
    payment_application: Any = None
    payment_version: Any = None
    petroleum: Any = None
    retail: Any = None
    telecommunication: Any = None
    travel: Any = None
    company: Any = None
    email_address: Any = None
    first_name: Any = None
    last_name: Any = None
    phone_number: Any = None
    title: Any = None
    address: ContactAddress | None = None
    dbas: list[Any] = field(default_factory=list)
    other_industries: list[Any] = field(default_factory=list)


@dataclass
class MerchantGenerator:
    """Renders ``<Merchant>`` for silo create/update; nothing when unset."""

    merchant: PCIMerchant | None = None

    def render(self) -> str:
        merchant = self.merchant
        if merchant is None:
            return ""
        node = ElementGenerator(
            "Merchant", {attr: getattr(merchant, name) for name, attr in _MERCHANT_ATTRIBUTES}
        )
        if merchant.address is not None:
            node.append(_address_element(merchant.address))
        node.append(dbas_generator(merchant.dbas))
        node.append(other_industries_generator(merchant.other_industries))
        return node.render()

    def parse(self, element: etree._Element) -> Self:
        node = _locate(element, "Merchant")
        if node is None:
            self.merchant = None
            return self
        self.merchant = PCIMerchant(
            **{name: node.get(attr, "") for name, attr in _MERCHANT_ATTRIBUTES},
            address=_address_from_element(node),
            dbas=dbas_generator().parse(node).values,
            other_industries=other_industries_generator().parse(node).values,
        )
        return self


@dataclass
class Organization:
    url: Any = None
    company: Any = None
    email_address: Any = None
    first_name: Any = None
    last_name: Any = None
    phone_number: Any = None
    title: Any = None
    address: ContactAddress | None = None


_ORGANIZATION_ATTRIBUTES = (("url", "url"),) + _CONTACT_ATTRIBUTES


@dataclass
class OrganizationGenerator:
    """Renders ``<Organization>`` for silo create/update; nothing when unset."""

    organization: Organization | None = None

    def render(self) -> str:
        organization = self.organization
        if organization is None:
            return ""
        node = ElementGenerator(
            "Organization",
            {attr: getattr(organization, name) for name, attr in _ORGANIZATION_ATTRIBUTES},
        )
        if organization.address is not None:
            node.append(_address_element(organization.address))
        return node.render()

    def parse(self, element: etree._Element) -> Self:
        node = _locate(element, "Organization")
        if node is None:
            self.organization = None
            return self
        self.organization = Organization(
            **{name: node.get(attr, "") for name, attr in _ORGANIZATION_ATTRIBUTES},
            address=_address_from_element(node),
        )
        return self


# ---------------------------------------------------------------------------
# Report configuration parts
# ---------------------------------------------------------------------------


@dataclass
class DBExport:
    """Export of report data to an external database."""

    type: Any = None
    user_id: Any = None
    password: Any = None
    realm: Any = None
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class DBExportGenerator:
    """Renders ``<DBExport>`` with its credentials and parameter table."""

    export: DBExport | None = None

    def render(self) -> str:
        export = self.export
        if export is None:
            return ""
        credentials = ElementGenerator(
            "credentials",
            {"userid": export.user_id, "password": export.password, "realm": export.realm},
        )
        return ElementGenerator(
            "DBExport",
            {"type": export.type},
            [credentials, db_export_params_generator(export.params)],
        ).render()

    def parse(self, element: etree._Element) -> Self:
        node = _locate(element, "DBExport")
        if node is None:
            self.export = None
            return self
        credentials = _attributes_of(node.find("credentials"))
        self.export = DBExport(
            type=node.get("type", ""),
            user_id=credentials.get("userid", ""),
            password=credentials.get("password", ""),
            realm=credentials.get("realm", ""),
            params=db_export_params_generator().parse(node).entries,
        )
        return self


@dataclass
class BaselineGenerator:
    """``<Baseline compareTo="..."/>``, or nothing without a baseline."""

    compare_to: Any = None

    def render(self) -> str:
        if self.compare_to is None:
            return ""
        return _empty_element("Baseline", [("compareTo", self.compare_to)])

    def parse(self, element: etree._Element) -> Self:
        node = _locate(element, "Baseline")
        self.compare_to = node.get("compareTo", "") if node is not None else None
        return self


@dataclass
class TemplateIDGenerator:
    """The ``template-id`` attribute of a report configuration.

    Renders the whole attribute, or nothing when no template is given;
    the server rejects an empty ``template-id``. ``parse`` reads the
    attribute from the element that carries it.
    """

    template_id: Any = None

    def render(self) -> str:
        if self.template_id is None:
            return ""
        return f'template-id="{_text(self.template_id)}"'

    def parse(self, element: etree._Element) -> Self:
        self.template_id = element.get("template-id")
        return self


# ---------------------------------------------------------------------------
# Factories for the request parameters the server understands
# ---------------------------------------------------------------------------


def hosts_generator(hosts: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("host", values=list(hosts))


def ranges_generator(ranges: Iterable[tuple[Any, Any]] = ()) -> AttributeRecordGenerator:
    """Address ranges as ``(from, to)`` pairs."""
    generator = AttributeRecordGenerator("range", ("from", "to"))
    for start, end in ranges:
        generator.add({"from": start, "to": end})
    return generator


def credentials_generator() -> AttributeRecordGenerator:
    return AttributeRecordGenerator(
        "adminCredentials", ("service", "host", "port", "userid", "password", "realm")
    )


def recipients_generator(recipients: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("Recipient", values=list(recipients))


def user_sites_generator(site_ids: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("site", attribute="id", values=list(site_ids))


def user_groups_generator(group_ids: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("group", attribute="id", values=list(group_ids))


def engine_sites_generator() -> AttributeRecordGenerator:
    return AttributeRecordGenerator("Site", ("id", "name"))


def asset_group_devices_generator() -> AttributeRecordGenerator:
    return AttributeRecordGenerator(
        "device", ("id", "site-id", "address", "riskfactor", "riskscore", "description")
    )


def dbas_generator(names: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("DBA", attribute="name", wrapper="DBAs", values=list(names))


def other_industries_generator(names: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "Industry", attribute="name", wrapper="OtherIndustries", values=list(names)
    )


def storage_properties_generator(properties: Mapping[str, Any] | None = None) -> KeyValueTableGenerator:
    return KeyValueTableGenerator(
        "StorageProperty", "key", "value", wrapper="StorageProperties", entries=dict(properties or {})
    )


def db_export_params_generator(params: Mapping[str, Any] | None = None) -> KeyValueTableGenerator:
    return KeyValueTableGenerator("param", "name", None, entries=dict(params or {}))


def ticket_ids_generator(ticket_ids: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("Ticket", attribute="id", values=list(ticket_ids))


def ticket_filters_generator() -> AttributeRecordGenerator:
    return AttributeRecordGenerator("Filter", ("type", "value"))


def ticket_comments_generator(comments: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("Comment", wrapper="Comments", values=list(comments))


def ticket_vulnerabilities_generator(vuln_ids: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "Vulnerability", attribute="id", wrapper="Vulnerabilities", values=list(vuln_ids)
    )


def role_names_generator(names: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("Role", attribute="name", values=list(names))


def report_filters_generator() -> AttributeRecordGenerator:
    return AttributeRecordGenerator("filter", ("type", "id"), wrapper="Filters")


def allowed_sites_generator(site_ids: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "AllowedSite", attribute="id", wrapper="AllowedSites", values=list(site_ids)
    )


def allowed_groups_generator(group_ids: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "AllowedGroup", attribute="id", wrapper="AllowedGroups", values=list(group_ids)
    )


def device_ids_generator(device_ids: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("device", attribute="id", values=list(device_ids))


def pool_engines_generator(engine_ids: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator("Engine", attribute="id", values=list(engine_ids))


def report_sections_generator(names: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "ReportSection", attribute="name", wrapper="ReportSections", values=list(names)
    )


def global_report_templates_generator(names: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "GlobalReportTemplate", attribute="name", wrapper="GlobalReportTemplates", values=list(names)
    )


def global_scan_templates_generator(names: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "GlobalScanTemplate", attribute="name", wrapper="GlobalScanTemplates", values=list(names)
    )


def global_scan_engines_generator(names: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "GlobalScanEngine", attribute="name", wrapper="GlobalScanEngines", values=list(names)
    )


def licensed_modules_generator(names: Iterable[Any] = ()) -> ScalarListGenerator:
    return ScalarListGenerator(
        "LicensedModule", attribute="name", wrapper="LicensedModules", values=list(names)
    )


def report_generate_generator(after_scan: Any = None, schedule: Any = None) -> ElementGenerator:
    return ElementGenerator("Generate", {"after-scan": after_scan, "schedule": schedule})


def report_delivery_generator(store_on_server: Any = None, location: Any = None) -> ElementGenerator:
    storage = ElementGenerator("Storage", {"storeOnServer": store_on_server})
    if location:
        storage.append(ElementGenerator("location", text=location))
    return ElementGenerator("Delivery", children=[storage])


# ---------------------------------------------------------------------------
# Registry: discriminant -> constructor, fixed at import time
# ---------------------------------------------------------------------------

GeneratorFactory = Callable[[], ContentGenerator]

GENERATORS: dict[str, GeneratorFactory] = {
    "hosts": hosts_generator,
    "ranges": ranges_generator,
    "credentials": credentials_generator,
    "alerts": AlertsGenerator,
    "recipients": recipients_generator,
    "sites": user_sites_generator,
    "groups": user_groups_generator,
    "engine-sites": engine_sites_generator,
    "devices": asset_group_devices_generator,
    "dbas": dbas_generator,
    "other-industries": other_industries_generator,
    "storage-properties": storage_properties_generator,
    "db-export-params": db_export_params_generator,
    "ticket-ids": ticket_ids_generator,
    "ticket-filters": ticket_filters_generator,
    "ticket-comments": ticket_comments_generator,
    "ticket-vulnerabilities": ticket_vulnerabilities_generator,
    "role-names": role_names_generator,
    "report-filters": report_filters_generator,
    "allowed-sites": allowed_sites_generator,
    "allowed-groups": allowed_groups_generator,
    "silo-access": SiloAccessGenerator,
    "pool-engines": pool_engines_generator,
    "device-ids": device_ids_generator,
    "merchant": MerchantGenerator,
    "organization": OrganizationGenerator,
    "db-export": DBExportGenerator,
    "baseline": BaselineGenerator,
    "template-id": TemplateIDGenerator,
    "report-sections": report_sections_generator,
    "global-report-templates": global_report_templates_generator,
    "global-scan-templates": global_scan_templates_generator,
    "global-scan-engines": global_scan_engines_generator,
    "licensed-modules": licensed_modules_generator,
}


def create_generator(name: str) -> ContentGenerator:
    """Instantiate an empty generator by its registry name.

    Raises:
        GeneratorParseError: If *name* is not registered.
    """
    factory = GENERATORS.get(name)
    if factory is None:
        raise GeneratorParseError(
            f"Unknown generator '{name}'. Available: {', '.join(sorted(GENERATORS))}"
        )
    return factory()


def load_parameters(element: etree._Element) -> dict[str, ContentGenerator | str]:
    """Read ``<Param>`` children into a parameter map.

    Fixture format::

        <Parameters>
          <Param name="siteName">Lab</Param>
          <Param name="siteHostsHostGenerator" generator="hosts">
            <host>10.0.0.1</host>
          </Param>
        </Parameters>

    Plain params map to their (unescaped) text so ``TemplateRequest.set``
    escapes them once; params with a ``generator`` attribute map to a
    generator parsed from the param's children.
    """
    params: dict[str, ContentGenerator | str] = {}
    for node in element.findall("Param"):
        name = node.get("name")
        if not name:
            raise GeneratorParseError("<Param> element without a name attribute")
        generator_name = node.get("generator")
        if generator_name:
            params[name] = create_generator(generator_name).parse(node)
        else:
            params[name] = _leaf_text(node)
    return params
