"""API routes for nearby-order clustering."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.clusters import ClusterRequest, ClusterResponse
from ...services.backend.client import BackendError
from ...services.clustering.service import process_cluster_request

router = APIRouter(prefix="/clusters", tags=["clusters"])


@router.post("", response_model=ClusterResponse, status_code=status.HTTP_200_OK)
def generate_clusters(payload: ClusterRequest) -> ClusterResponse:
    """Group eligible orders into clusters whose members are all within `radius_km` of each other.

    Orders come from the request body, or from the merchant backend when only a
    business id is given. An empty or all-ineligible order list yields no clusters.
    """
    try:
        return process_cluster_request(payload)
    except ConnectionError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Merchant backend unavailable: {str(exc)}",
        ) from exc
    except BackendError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error clustering orders: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to cluster orders: {str(exc)}",
        ) from exc
