from __future__ import annotations

from fastapi import APIRouter, Depends

from api.auth import AuthDep
from api.deps import get_chain_builder, get_verifier
from api.schemas.memory import AppendFactsRequest, VerifyResponse
from trustlog.core.models import ChainStatus, MemoryChainLink
from trustlog.memory.chain import ChainBuilder
from trustlog.memory.verifier import BrokenChain, ChainVerifier, Verified

router = APIRouter(prefix="/memory", dependencies=[AuthDep])


@router.post("/{owner}/facts", response_model=list[MemoryChainLink])
def append_facts(
    owner: str,
    req: AppendFactsRequest,
    builder: ChainBuilder = Depends(get_chain_builder),
) -> list[MemoryChainLink]:
    facts = [f.model_dump() for f in req.facts]
    return builder.chain_batch(owner, facts, source_document_hash=req.source_document_hash)


@router.get("/{owner}/status", response_model=ChainStatus)
def chain_status(owner: str, verifier: ChainVerifier = Depends(get_verifier)) -> ChainStatus:
    return verifier.status(owner)


@router.get("/{owner}/verify", response_model=VerifyResponse)
def verify_chain(owner: str, verifier: ChainVerifier = Depends(get_verifier)) -> VerifyResponse:
    result = verifier.verify_owner(owner)
    if isinstance(result, BrokenChain):
        return VerifyResponse(
            chain_id=result.chain_id,
            status=result.kind,
            at_sequence=result.at_sequence,
            reason=result.reason,
            details=result.details,
        )
    if isinstance(result, Verified):
        return VerifyResponse(chain_id=result.chain_id, status=result.kind, length=result.length)
    return VerifyResponse(chain_id=result.chain_id, status=result.kind, length=0)
