#!/usr/bin/env python3
"""
SmackTalk - 后端主入口
"""

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from smacktalk.core.config import settings
from smacktalk.core.logging import setup_logging
from smacktalk.api import api_router
from smacktalk.api.websocket_routes import get_websocket_manager
from smacktalk.core.database import init_db
from smacktalk.services.event_bus import event_bus

app = FastAPI(
    title=settings.APP_NAME,
    description="SmackTalk 派对游戏后端API",
    version=settings.VERSION
)

# CORS设置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # 前端开发服务器
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册API路由
app.include_router(api_router, prefix="/api")

@app.on_event("startup")
async def startup_event():
    """应用启动时的初始化"""
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    logger.info(f"🚀 启动 {settings.APP_NAME} 后端服务...")
    await init_db()

    # 领域事件推送到房间的WebSocket订阅者
    event_bus.subscribe(get_websocket_manager().broadcast_event)

@app.get("/")
async def root():
    """根路径健康检查"""
    return {"message": f"{settings.APP_NAME} 后端运行中", "status": "healthy"}

@app.get("/health")
async def health_check():
    """健康检查端点"""
    return {"status": "healthy", "service": "smacktalk"}

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
