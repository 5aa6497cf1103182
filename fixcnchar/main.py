"""fixcnchar 服务主入口"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fixcnchar.config import settings
from fixcnchar.api import api_router
from fixcnchar.api.dependencies import config_source
from fixcnchar.api.schemas import HealthResponse

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info(f"Starting {settings.app_name} v{settings.version}")

    # 启动规则文件监视器
    watcher = None
    if settings.rules_file is not None and settings.watch_rules_file:
        from fixcnchar.core.rules.watcher import RulesFileWatcher
        watcher = RulesFileWatcher(
            settings.rules_file,
            on_change=lambda path: config_source.reload(),
            debounce_delay=settings.watch_debounce_delay,
        )
        watcher.start()

    logger.info(f"Loaded {len(config_source.get_rules())} rules, "
                f"real-time {'enabled' if config_source.is_realtime_enabled() else 'disabled'}")
    logger.info("Service ready!")

    yield

    if watcher is not None:
        watcher.stop()
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="中文标点实时替换服务",
    lifespan=lifespan,
)

# CORS 中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(api_router)


@app.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check():
    """健康检查"""
    return HealthResponse(status="healthy", version=settings.version)


@app.get("/", tags=["system"])
async def root():
    """服务信息"""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("fixcnchar.main:app", host=settings.host, port=settings.port, reload=settings.debug)
