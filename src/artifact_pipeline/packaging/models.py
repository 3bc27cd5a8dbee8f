"""
Data model for function packages.

FunctionPackageManifest is the input to PackageBuilder.package(); PackageArtifact
is its output. Both are plain dataclasses so they can be built in code or loaded
from JSON (see core.config_loader.load_function_manifest).
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class HttpTriggerConfig:
    """
    HTTP trigger declaration.

    Attributes:
        methods: Accepted HTTP methods, e.g. ["GET", "POST"]
        auth_level: "anonymous", "function" or "admin"; "function" when omitted
        route: Optional route template, e.g. "users/{id}"
    """

    methods: List[str] = field(default_factory=list)
    auth_level: Optional[str] = None
    route: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HttpTriggerConfig":
        return cls(
            methods=list(data.get("methods", [])),
            auth_level=data.get("auth_level") or data.get("authLevel"),
            route=data.get("route"),
        )


@dataclass(frozen=True)
class FunctionDefinition:
    """
    One function inside a Function App.

    Attributes:
        name: Function name; becomes the directory name inside the package
        code: Function source code
        http_trigger: Optional HTTP trigger declaration
        bindings: Extra binding documents, appended to function.json as-is
    """

    name: str
    code: str
    http_trigger: Optional[HttpTriggerConfig] = None
    bindings: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionDefinition":
        trigger = data.get("http_trigger") or data.get("httpTrigger")
        return cls(
            name=data["name"],
            code=data.get("code", ""),
            http_trigger=HttpTriggerConfig.from_dict(trigger) if trigger else None,
            bindings=list(data.get("bindings", [])),
        )


@dataclass(frozen=True)
class FunctionPackageManifest:
    """
    Everything needed to build one Function App package.

    Attributes:
        function_app_name: Function App the package is deployed to
        functions: Ordered function definitions
        runtime: Runtime version pin (informational, e.g. "~4")
        extension_bundle: {"id": ..., "version": ...}; default bundle when omitted
    """

    function_app_name: str
    functions: List[FunctionDefinition] = field(default_factory=list)
    runtime: Optional[str] = None
    extension_bundle: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionPackageManifest":
        return cls(
            function_app_name=data["function_app_name"],
            functions=[FunctionDefinition.from_dict(f) for f in data.get("functions", [])],
            runtime=data.get("runtime"),
            extension_bundle=data.get("extension_bundle"),
        )


@dataclass(frozen=True)
class PackageStructure:
    """
    What was written into the package.

    Attributes:
        host_json: The root host.json document
        function_jsons: function name -> function.json document
        code_files: function name -> code file path inside the archive
    """

    host_json: Dict[str, Any]
    function_jsons: Dict[str, Dict[str, Any]]
    code_files: Dict[str, str]


@dataclass(frozen=True)
class PackageArtifact:
    """
    A persisted function package.

    Attributes:
        package_path: Path of the ZIP file on disk
        function_app_name: Function App the package belongs to
        functions: Names of the included functions, in manifest order
        size: Size of the ZIP file in bytes
        hash: "sha256:{hexdigest}" of the ZIP bytes
        structure: PackageStructure describing the archive content
    """

    package_path: str
    function_app_name: str
    functions: List[str]
    size: int
    hash: str
    structure: PackageStructure

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ValidationReport:
    """Result of validate_package(): valid is True only when errors is empty."""

    valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationReport":
        return cls(valid=not errors, errors=list(errors))
