"""
FastAPI应用主入口
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager

from api.routes import storage as storage_routes
from api.middleware import RequestIDMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.external.storage import (
    init_storage_client,
    shutdown_storage_client,
    get_storage_config,
    check_storage_config,
    StorageType,
)


# 初始化日志：在入口处显式配置
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 初始化存储服务：未知或未实现的后端直接启动失败，不回退到本地磁盘
    config = get_storage_config()
    check = check_storage_config(config)
    if not check.is_valid:
        logger.warning(
            "storage_config_incomplete",
            provider=config.type,
            error=check.error,
            solution=check.solution,
        )

    storage = await init_storage_client(config)
    logger.info("storage_initialized", message="Storage service initialized", provider=config.type)
    if await storage.health_check():
        logger.info("storage_health_check_passed", message="Storage health check passed")

    yield

    # 关闭存储服务
    await shutdown_storage_client()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="知识库文件存储服务",
)

# 添加中间件（注意顺序：从下往上执行）
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册全局异常处理器
register_exception_handlers(app)


# 注册路由
app.include_router(storage_routes.router, prefix="/api/v1")

# 本地存储：将上传目录挂载到公开路径（/uploads/{key}）
_storage_config = get_storage_config()
if _storage_config.type == StorageType.LOCAL.value:
    app.mount(
        _storage_config.local_public_mount,
        StaticFiles(directory=_storage_config.local_base_path, check_dir=False),
        name="uploads",
    )


# 根路径
@app.get("/", tags=["Root"])
async def root():
    """API根路径"""
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
            "redoc": "/redoc"
        },
    )


# 健康检查
@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点"""
    return success_response(data={"status": "healthy"})


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
