"""规则配置 API"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from fixcnchar.api.dependencies import get_config_source
from fixcnchar.api.schemas import RulesResponse, RulesUpdateRequest
from fixcnchar.core.config_source import ConfigSource, SettingsConfigSource
from fixcnchar.core.rules import RuleTable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/rules", tags=["rules"])


def _response(config_source: ConfigSource) -> RulesResponse:
    rules_file = None
    if isinstance(config_source, SettingsConfigSource) and config_source.settings.rules_file:
        rules_file = str(config_source.settings.rules_file)
    return RulesResponse(
        rules=RuleTable.build(config_source.get_rules()).as_dict(),
        enable_realtime=config_source.is_realtime_enabled(),
        rules_file=rules_file,
    )


@router.get("", response_model=RulesResponse)
async def get_rules(config_source: ConfigSource = Depends(get_config_source)) -> RulesResponse:
    return _response(config_source)


@router.put("", response_model=RulesResponse)
async def update_rules(
    request: RulesUpdateRequest,
    config_source: ConfigSource = Depends(get_config_source),
) -> RulesResponse:
    if not isinstance(config_source, SettingsConfigSource):
        raise HTTPException(status_code=409, detail="Configuration is read-only")

    changes = request.model_dump(exclude_none=True)
    if changes:
        config_source.update(**changes)
    return _response(config_source)


@router.post("/reload", response_model=RulesResponse)
async def reload_rules(config_source: ConfigSource = Depends(get_config_source)) -> RulesResponse:
    if not isinstance(config_source, SettingsConfigSource):
        raise HTTPException(status_code=409, detail="Configuration is read-only")

    config_source.reload()
    return _response(config_source)
