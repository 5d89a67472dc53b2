"""
FastAPI应用主入口
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from api.routes import calls as calls_routes
from api.routes import json_tools as json_routes
from api.routes import proto as proto_routes
from api.routes import reflection as reflection_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from application.ports.transport import TransportPort
from application.services.dispatch_service import RpcDispatchService
from application.services.proto_service import ProtoSchemaService
from application.services.streaming_service import StreamingSessionController
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.transport import GrpcurlTransport, InMemoryTransport


# 初始化日志：在入口处显式配置
configure_logging()
logger = get_logger(__name__)


def build_transport() -> TransportPort:
    """根据 TRANSPORT__PROVIDER 选择传输实现"""
    provider = settings.transport.provider
    if provider == "inmemory":
        logger.info("transport_selected", provider="inmemory")
        return InMemoryTransport()
    logger.info(
        "transport_selected",
        provider="grpcurl",
        binary=settings.transport.grpcurl_path,
        insecure=settings.transport.insecure,
    )
    return GrpcurlTransport(
        binary=settings.transport.grpcurl_path,
        insecure=settings.transport.insecure,
        temp_dir=settings.transport.temp_dir,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    transport = build_transport()
    controller = StreamingSessionController(
        transport,
        queue_maxsize=settings.streaming.event_queue_max,
    )
    await controller.attach()

    app.state.transport = transport
    app.state.stream_controller = controller
    app.state.dispatch_service = RpcDispatchService(
        transport=transport,
        controller=controller,
        insecure=settings.transport.insecure,
    )
    app.state.proto_service = ProtoSchemaService(
        max_depth=settings.schema_rules.max_depth,
        strict_tags=settings.schema_rules.strict_tags,
    )
    logger.info("application_started", environment=settings.ENVIRONMENT)

    yield

    # 先停止事件消费，再关闭子进程
    await controller.aclose()
    try:
        await transport.aclose()
    except Exception as exc:
        logger.error("transport_close_failed", error=str(exc))
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="gRPC 调试工作台：解析 proto、生成/校验载荷并发起一元与流式调用",
)

# 添加中间件（注意顺序：从下往上执行）
# 1. Request ID中间件（最先执行，为后续中间件提供request_id）
app.add_middleware(RequestIDMiddleware)

# 2. 日志中间件（依赖request_id）
app.add_middleware(LoggingMiddleware)

# 3. CORS中间件
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
app.include_router(proto_routes.router, prefix="/api/v1")
app.include_router(json_routes.router, prefix="/api/v1")
app.include_router(calls_routes.router, prefix="/api/v1")
app.include_router(reflection_routes.router, prefix="/api/v1")


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
        message="Welcome"
    )


# 健康检查
@app.get("/health", tags=["Health"])
async def health_check():
    """健康检查端点"""
    return success_response(
        data={"status": "healthy", "transport": settings.transport.provider},
        message="OK",
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
