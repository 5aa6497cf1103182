"""API 请求/响应模型"""
from typing import Dict, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    version: str


class RewriteRequest(BaseModel):
    """批量改写请求"""
    text: str
    rules: Optional[Dict[str, str]] = Field(
        default=None,
        description="本次请求使用的规则，省略时使用当前配置",
    )


class RewriteResponse(BaseModel):
    text: str
    changed: bool
    replacements: int = 0


class RulesResponse(BaseModel):
    rules: Dict[str, str]
    enable_realtime: bool
    rules_file: Optional[str] = None


class RulesUpdateRequest(BaseModel):
    """规则更新请求，省略的字段保持不变"""
    rules: Optional[Dict[str, str]] = None
    enable_realtime: Optional[bool] = None
