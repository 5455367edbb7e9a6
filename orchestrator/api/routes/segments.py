"""
Endpoints de segmentos.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from orchestrator.api.deps import get_segment_service
from orchestrator.services.segments import SegmentService

router = APIRouter(prefix="/api/v1/segments", tags=["segments"])


class PreviewSegmento(BaseModel):
    rules: List[Dict[str, Any]] = []


class CriarSegmento(BaseModel):
    name: str
    description: str = ""
    rules: List[Dict[str, Any]] = []


class AtualizarSegmento(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    rules: Optional[List[Dict[str, Any]]] = None


@router.post("/preview")
async def preview_segmento(
    dados: PreviewSegmento,
    service: SegmentService = Depends(get_segment_service),
):
    """Conta clientes que casam com as regras, sem salvar."""
    count = await service.preview(dados.rules)
    return {"count": count}


@router.post("", status_code=201)
async def criar_segmento(
    dados: CriarSegmento,
    service: SegmentService = Depends(get_segment_service),
):
    segment = await service.create(dados.name, dados.description, dados.rules)
    return segment.to_dict()


@router.put("/{segment_id}")
async def atualizar_segmento(
    segment_id: str,
    dados: AtualizarSegmento,
    service: SegmentService = Depends(get_segment_service),
):
    segment = await service.update(
        segment_id,
        name=dados.name,
        description=dados.description,
        rules=dados.rules,
    )
    return segment.to_dict()


@router.get("/{segment_id}")
async def buscar_segmento(
    segment_id: str,
    service: SegmentService = Depends(get_segment_service),
):
    segment = await service.get(segment_id)
    return segment.to_dict()
