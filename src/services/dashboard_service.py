"""Resource fetcher for the dashboard summary."""
from core.http_client import ApiClient
from schemas.dashboard import DashboardStats


async def get_dashboard_stats(api: ApiClient) -> DashboardStats:
    """Fetch aggregate counters; the backend wraps them in ``data``."""
    body = await api.get(
        "/dashboard/stats", fallback="Error al obtener estadísticas del dashboard",
    )
    return DashboardStats.model_validate(body.get("data", body) if isinstance(body, dict) else {})
