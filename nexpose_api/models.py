"""Data models for nexpose-api.

All models use Pydantic v2. Result models are built from one response
element through ElementReader, so absent attributes take soft defaults
and malformed ones raise ResponseParseError.
"""

from __future__ import annotations

from typing import Self

from lxml import etree
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from nexpose_api.response import ElementReader
from nexpose_api.versions import APIVersion


# =============================================================================
# Result Models
# =============================================================================


class SiteSummary(BaseModel):
    """One ``<SiteSummary>`` from a site listing."""

    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="Site id")
    name: str = Field(default="", description="Site name")
    description: str = Field(default="", description="Free-form description")
    risk_factor: float = Field(default=0.0, description="Risk multiplier (riskfactor)")
    risk_score: float = Field(default=0.0, description="Aggregate risk score (riskscore)")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("id"),
            name=r.string("name"),
            description=r.string("description"),
            risk_factor=r.number("riskfactor"),
            risk_score=r.number("riskscore"),
        )


class AssetGroupSummary(BaseModel):
    """One ``<AssetGroupSummary>`` from an asset group listing."""

    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="Asset group id")
    name: str = Field(default="", description="Group name")
    description: str = Field(default="", description="Free-form description")
    risk_score: float = Field(default=0.0, description="Aggregate risk score (riskscore)")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("id"),
            name=r.string("name"),
            description=r.string("description"),
            risk_score=r.number("riskscore"),
        )


class EngineSummary(BaseModel):
    """One ``<EngineSummary>``; ``status`` is e.g. "active" or "unknown"."""

    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="Engine id")
    name: str = Field(default="", description="Engine name")
    address: str = Field(default="", description="Host name or IP address")
    port: int = Field(default=0, description="Engine listener port")
    status: str = Field(default="", description="Engine status as reported by the console")
    scope: str = Field(default="", description="'global' or 'silo'")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("id"),
            name=r.string("name"),
            address=r.string("address"),
            port=r.integer("port"),
            status=r.string("status"),
            scope=r.string("scope"),
        )


class UserSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="User id")
    user_name: str = Field(default="", description="Login name (userName)")
    full_name: str = Field(default="", description="Display name (fullName)")
    email: str = Field(default="", description="Email address")
    auth_source: str = Field(default="", description="Authentication source (authSource)")
    auth_module: str = Field(default="", description="Authentication module (authModule)")
    administrator: bool = Field(default=False, description="Global administrator flag")
    disabled: bool = Field(default=False, description="Account disabled flag")
    site_count: int = Field(default=0, description="Number of accessible sites (siteCount)")
    group_count: int = Field(default=0, description="Number of accessible groups (groupCount)")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("id"),
            user_name=r.string("userName"),
            full_name=r.string("fullName"),
            email=r.string("email"),
            auth_source=r.string("authSource"),
            auth_module=r.string("authModule"),
            administrator=r.boolean("administrator"),
            disabled=r.boolean("disabled"),
            site_count=r.integer("siteCount"),
            group_count=r.integer("groupCount"),
        )


class TicketSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="Ticket id")
    name: str = Field(default="", description="Ticket name")
    state: str = Field(default="", description="Workflow state, e.g. OPEN")
    device_id: int = Field(default=0, description="Affected asset (device-id)")
    created_on: str = Field(default="", description="Creation timestamp as sent by the server")
    author: str = Field(default="", description="Creating user")
    priority: str = Field(default="", description="Priority label")
    assigned_to: str = Field(default="", description="Assignee user name")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("id"),
            name=r.string("name"),
            state=r.string("state"),
            device_id=r.integer("device-id"),
            created_on=r.string("created-on"),
            author=r.string("author"),
            priority=r.string("priority"),
            assigned_to=r.string("assigned-to"),
        )


class RoleSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="Role id")
    name: str = Field(default="", description="Role short name")
    full_name: str = Field(default="", description="Role display name (full-name)")
    description: str = Field(default="", description="Free-form description")
    enabled: bool = Field(default=False, description="Whether the role can be assigned")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("id"),
            name=r.string("name"),
            full_name=r.string("full-name"),
            description=r.string("description"),
            enabled=r.boolean("enabled"),
        )


class MultiTenantUserSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="User id")
    user_name: str = Field(default="", description="Login name (user-name)")
    full_name: str = Field(default="", description="Display name (full-name)")
    auth_source: str = Field(default="", description="Authentication source (auth-source)")
    auth_module: str = Field(default="", description="Authentication module (auth-module)")
    locked: bool = Field(default=False, description="Account locked flag")
    silo_count: int = Field(default=0, description="Number of silos (silo-count)")
    superuser: bool = Field(default=False, description="Superuser flag")
    enabled: bool = Field(default=False, description="Account enabled flag")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("id"),
            user_name=r.string("user-name"),
            full_name=r.string("full-name"),
            auth_source=r.string("auth-source"),
            auth_module=r.string("auth-module"),
            locked=r.boolean("locked"),
            silo_count=r.integer("silo-count"),
            superuser=r.boolean("superuser"),
            enabled=r.boolean("enabled"),
        )


class SiloSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(description="Silo id (silo ids are strings)")
    name: str = Field(default="", description="Silo name")
    description: str = Field(default="", description="Free-form description")
    silo_profile_id: str = Field(default="", description="Profile the silo was created from")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.string("id"),
            name=r.string("name"),
            description=r.string("description"),
            silo_profile_id=r.string("silo-profile-id"),
        )


class ReportConfigSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="Report configuration id (cfg-id)")
    name: str = Field(default="", description="Report name")
    template_id: str = Field(default="", description="Report template (template-id)")
    status: str = Field(default="", description="Last generation status")
    generated_on: str = Field(default="", description="Last generation timestamp")
    report_uri: str = Field(default="", description="Download location of the last report")
    scope: str = Field(default="", description="'global' or 'silo'")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("cfg-id"),
            name=r.string("name"),
            template_id=r.string("template-id"),
            status=r.string("status"),
            generated_on=r.string("generated-on"),
            report_uri=r.string("report-URI"),
            scope=r.string("scope"),
        )


class DeviceSummary(BaseModel):
    """One ``<device>`` from a site device listing."""

    model_config = ConfigDict(extra="forbid")

    id: int = Field(description="Asset id")
    site_id: str = Field(default="", description="Owning site (site-id)")
    address: str = Field(default="", description="IP address")
    risk_factor: float = Field(default=0.0, description="Risk multiplier (riskfactor)")
    risk_score: float = Field(default=0.0, description="Aggregate risk score (riskscore)")

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        return cls(
            id=r.integer("id"),
            site_id=r.string("site-id"),
            address=r.string("address"),
            risk_factor=r.number("riskfactor"),
            risk_score=r.number("riskscore"),
        )


class TaskCounts(BaseModel):
    model_config = ConfigDict(extra="forbid")

    active: int = Field(default=0, description="Tasks running")
    completed: int = Field(default=0, description="Tasks finished")
    pending: int = Field(default=0, description="Tasks queued")


class NodeCounts(BaseModel):
    model_config = ConfigDict(extra="forbid")

    live: int = Field(default=0, description="Hosts that responded")
    dead: int = Field(default=0, description="Hosts that did not respond")
    filtered: int = Field(default=0, description="Hosts behind a filter")
    unresolved: int = Field(default=0, description="Names that did not resolve")
    other: int = Field(default=0, description="Hosts in any other state")


class VulnerabilityCount(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: str = Field(default="", description="e.g. vuln-exploit, vuln-version, not-vuln")
    severity: int = Field(default=0, description="Severity bucket, 0 when not reported")
    count: int = Field(default=0, description="Number of findings")


class ScanSummary(BaseModel):
    """``<ScanSummary>`` from a scan statistics response."""

    model_config = ConfigDict(extra="forbid")

    scan_id: int = Field(description="Scan id (scan-id)")
    site_id: int = Field(default=0, description="Scanned site (site-id)")
    engine_id: int = Field(default=0, description="Engine that ran the scan (engine-id)")
    name: str = Field(default="", description="Scan name")
    status: str = Field(default="", description="running, finished, stopped, error, ...")
    start_time: str = Field(default="", description="Start timestamp (startTime)")
    end_time: str = Field(default="", description="End timestamp (endTime)")
    tasks: TaskCounts = Field(default_factory=TaskCounts, description="Task counters")
    nodes: NodeCounts = Field(default_factory=NodeCounts, description="Host counters")
    vulnerabilities: list[VulnerabilityCount] = Field(
        default_factory=list, description="Finding counts by status and severity"
    )

    @classmethod
    def from_element(cls, element: etree._Element) -> Self:
        r = ElementReader(element)
        tasks = r.children("tasks")
        nodes = r.children("nodes")
        task_reader = ElementReader(tasks[0]) if tasks else None
        node_reader = ElementReader(nodes[0]) if nodes else None
        return cls(
            scan_id=r.integer("scan-id"),
            site_id=r.integer("site-id"),
            engine_id=r.integer("engine-id"),
            name=r.string("name"),
            status=r.string("status"),
            start_time=r.string("startTime"),
            end_time=r.string("endTime"),
            tasks=TaskCounts(
                active=task_reader.integer("active"),
                completed=task_reader.integer("completed"),
                pending=task_reader.integer("pending"),
            ) if task_reader else TaskCounts(),
            nodes=NodeCounts(
                live=node_reader.integer("live"),
                dead=node_reader.integer("dead"),
                filtered=node_reader.integer("filtered"),
                unresolved=node_reader.integer("unresolved"),
                other=node_reader.integer("other"),
            ) if node_reader else NodeCounts(),
            vulnerabilities=[
                VulnerabilityCount(
                    status=v.string("status"),
                    severity=v.integer("severity"),
                    count=v.integer("count"),
                )
                for v in (ElementReader(node) for node in r.children("vulnerabilities"))
            ],
        )


# =============================================================================
# Configuration Models
# =============================================================================


class SessionConfig(BaseModel):
    """Connection settings for one server."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(description="Console URL, e.g. https://nexpose.example.com:3780")
    username: str | None = Field(default=None, description="Login user name")
    password: str | None = Field(default=None, description="Login password (supports ${ENV_VAR})")
    api_version: APIVersion = Field(default=APIVersion.V1_1, description="API version to target")
    protocol: str = Field(default="xml", description="Final path segment of the API endpoint")
    silo_id: str | None = Field(default=None, description="Silo to log into (multi-tenant consoles)")
    verify_ssl: bool = Field(default=True, description="Verify the server certificate and host name")
    ca_bundle: str | None = Field(default=None, description="PEM bundle of trusted CAs")
    connect_timeout: float = Field(default=20.0, description="Connect timeout in seconds")
    read_timeout: float | None = Field(
        default=None, description="Read timeout in seconds; None waits indefinitely"
    )

    @field_validator("base_url")
    @classmethod
    def check_base_url(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError("base_url must start with https:// or http://")
        return v.rstrip("/")

    @field_validator("api_version", mode="before")
    @classmethod
    def coerce_api_version(cls, v: object) -> object:
        # YAML reads 1.1 as a float
        if isinstance(v, float):
            return str(v)
        return v

    @model_validator(mode="after")
    def check_timeouts(self) -> Self:
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")
        if self.read_timeout is not None and self.read_timeout <= 0:
            raise ValueError("read_timeout must be positive when set")
        return self


class ServersConfig(BaseModel):
    """Top-level configuration file structure."""

    model_config = ConfigDict(extra="forbid")

    servers: dict[str, SessionConfig] = Field(description="Server name -> connection settings")
    default: str | None = Field(default=None, description="Server used when none is named")

    @model_validator(mode="after")
    def check_default(self) -> Self:
        if self.default is not None and self.default not in self.servers:
            raise ValueError(f"default server '{self.default}' is not defined under servers")
        return self
