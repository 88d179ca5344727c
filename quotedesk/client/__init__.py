"""HTTP access to the HiSAFE API."""
from quotedesk.client.gateway import GatewayError, RequestGateway
from quotedesk.client.repository import TaskRepository, TaskRepositoryError

__all__ = ["GatewayError", "RequestGateway", "TaskRepository", "TaskRepositoryError"]
