# ==========================================
# 1. Artifact Storage
# ==========================================
ARTIFACT_CONTAINER_NAME = "arm-templates"
BLOB_ENDPOINT_TEMPLATE = "https://{account_name}.blob.core.windows.net"
PACKAGES_PREFIX = "packages"

TEMPLATE_CONTENT_TYPE = "application/json"
PACKAGE_CONTENT_TYPE = "application/zip"

# Blob metadata keys (must be valid C# identifiers)
METADATA_CHECKSUM = "checksum"
METADATA_UPLOADED_AT = "uploaded_at"
METADATA_DEPLOYMENT_ID = "deployment_id"

DEFAULT_SAS_EXPIRY_HOURS = 24
DEFAULT_RETENTION_DAYS = 30

# ==========================================
# 2. Storage Account Naming
# ==========================================
STORAGE_ACCOUNT_MAX_LENGTH = 24
STORAGE_ACCOUNT_MIN_HASH_LENGTH = 6
STORAGE_ACCOUNT_SUFFIX = "cdk"
DEFAULT_ORGANIZATION_TOKEN = "artifacts"
RESOURCE_GROUP_ORG_PATTERN = r"rg-(?:pl-)?([a-zA-Z0-9]+)"

DEPLOYMENT_ID_PREFIX = "deploy"

# Secure baseline applied when the account has to be created
STORAGE_ACCOUNT_SKU = "Standard_LRS"
STORAGE_ACCOUNT_KIND = "StorageV2"
STORAGE_ACCOUNT_ACCESS_TIER = "Hot"
STORAGE_ACCOUNT_MIN_TLS = "TLS1_2"
STORAGE_ACCOUNT_TAGS = {
    "purpose": "arm-templates",
    "managedBy": "artifact-pipeline",
}

# ==========================================
# 3. Function Packages
# ==========================================
HOST_JSON_FILE = "host.json"
FUNCTION_JSON_FILE = "function.json"
FUNCTION_CODE_FILE = "index.js"

HOST_JSON_VERSION = "2.0"
DEFAULT_EXTENSION_BUNDLE = {
    "id": "Microsoft.Azure.Functions.ExtensionBundle",
    "version": "[3.*, 4.0.0)",
}
DEFAULT_AUTH_LEVEL = "function"
AUTH_LEVELS = ("anonymous", "function", "admin")

DEFAULT_COMPRESSION_LEVEL = 9

# Inline (ARM property) packaging limit, in bytes of base64 text
INLINE_CODE_MAX_SIZE = 4096

# ==========================================
# 4. Uploads
# ==========================================
DEFAULT_UPLOAD_CONCURRENCY = 5
