"""
Results API
Probe outcomes enter the system here.

Endpoints:
    POST   /api/results/{resource_id}   → Ingest one or more results
    GET    /api/results/{resource_id}   → List retained results
    DELETE /api/results/{resource_id}   → Drop retained results
    GET    /api/results                 → Store statistics
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List

from core import ResultBuffer, MonitoringResult, IngestionResult
from .deps import get_result_buffer

router = APIRouter(prefix="/results", tags=["Results"])


@router.get("")
async def get_stats(buffer: ResultBuffer = Depends(get_result_buffer)):
    return buffer.stats()


@router.post("/{resource_id}", response_model=IngestionResult)
async def ingest_results(
    resource_id: str,
    results: List[MonitoringResult],
    buffer: ResultBuffer = Depends(get_result_buffer)
):
    if not results:
        return IngestionResult(resource_id=resource_id, count=0, message="No results")
    
    added = buffer.extend(resource_id, results)
    return IngestionResult(
        resource_id=resource_id,
        count=added,
        retained=buffer.count(resource_id),
        message=f"Ingested {added} results"
    )


@router.get("/{resource_id}")
async def list_results(
    resource_id: str,
    limit: int = Query(default=100, ge=1, le=10000),
    buffer: ResultBuffer = Depends(get_result_buffer)
):
    results = buffer.get_results(resource_id, limit)
    
    if not results:
        raise HTTPException(404, f"No results for {resource_id}")
    
    return {
        "resource_id": resource_id,
        "count": len(results),
        "data": [r.model_dump(mode="json") for r in results]
    }


@router.delete("/{resource_id}")
async def clear_results(resource_id: str, buffer: ResultBuffer = Depends(get_result_buffer)):
    buffer.clear(resource_id)
    return {"message": f"Results cleared for {resource_id}"}
