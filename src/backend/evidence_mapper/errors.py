"""Error taxonomy shared by every pipeline component."""


class EvidenceMapperError(Exception):
    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(EvidenceMapperError):
    """Missing or invalid credentials/settings. Fatal, never retried."""

    kind = "configuration_error"


class ExtractionError(EvidenceMapperError):
    """Source artifact is unreadable, unsupported or too short to index."""

    status_code = 422
    kind = "extraction_error"


class ServiceError(EvidenceMapperError):
    """An upstream call failed or timed out."""

    status_code = 502
    kind = "service_error"


class EmbeddingServiceError(ServiceError):
    kind = "embedding_service_error"


class ModelServiceError(ServiceError):
    kind = "model_service_error"


class StorageServiceError(ServiceError):
    kind = "storage_service_error"


class IntegrationServiceError(ServiceError):
    kind = "integration_service_error"


class ParseError(EvidenceMapperError):
    status_code = 502
    kind = "parse_error"


class NotFoundError(EvidenceMapperError):
    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class PartialSyncWarning(UserWarning):
    """Evidence was written but the owning Control could not be updated."""
