"""Constants for the S3 Bucket Operator."""

# API Group
API_GROUP = "s3.cloud37.dev"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_BUCKET = "Bucket"
PLURAL_BUCKETS = "buckets"

# Finalizers
FINALIZER = f"{API_GROUP}/finalizer"

# Deletion policies
DELETION_POLICY_RETAIN = "Retain"
DELETION_POLICY_DELETE = "Delete"

# Condition Types
COND_READY = "Ready"
COND_CREATION_FAILED = "CreationFailed"
COND_CONFIGURATION_FAILED = "ConfigurationFailed"
COND_VALIDATION_FAILED = "ValidationFailed"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"
EVENT_REASON_BUCKET_CREATED = "BucketCreated"
EVENT_REASON_BUCKET_UPDATED = "BucketUpdated"
EVENT_REASON_BUCKET_DELETED = "BucketDeleted"
EVENT_REASON_BUCKET_RETAINED = "BucketRetained"

# Region whose historical naming rules and endpoints differ from all others
LEGACY_DEFAULT_REGION = "us-east-1"

# Prefix used when neither name nor namePrefix is given
DEFAULT_NAME_PREFIX = "bucket-"
