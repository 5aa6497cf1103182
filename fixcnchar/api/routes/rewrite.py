"""选区 / 全文批量改写 API"""
import logging

from fastapi import APIRouter, Depends

from fixcnchar.api.dependencies import get_config_source
from fixcnchar.api.schemas import RewriteRequest, RewriteResponse
from fixcnchar.core.config_source import ConfigSource
from fixcnchar.core.rules import RuleTable, apply_document_rewrite, apply_selection_rewrite

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/rewrite", tags=["rewrite"])


def _table(request: RewriteRequest, config_source: ConfigSource) -> RuleTable:
    if request.rules is not None:
        return RuleTable.build(request.rules)
    return RuleTable.build(config_source.get_rules())


@router.post("/selection", response_model=RewriteResponse)
async def rewrite_selection(
    request: RewriteRequest,
    config_source: ConfigSource = Depends(get_config_source),
) -> RewriteResponse:
    table = _table(request, config_source)
    text = apply_selection_rewrite(request.text, table)
    return RewriteResponse(
        text=text,
        changed=text != request.text,
        replacements=table.count_matches(request.text),
    )


@router.post("/document", response_model=RewriteResponse)
async def rewrite_document(
    request: RewriteRequest,
    config_source: ConfigSource = Depends(get_config_source),
) -> RewriteResponse:
    table = _table(request, config_source)
    text = apply_document_rewrite(request.text, table)
    logger.debug(f"Document rewrite: {len(request.text)} chars")
    return RewriteResponse(
        text=text,
        changed=text != request.text,
        replacements=table.count_matches(request.text),
    )
