"""
接口层 - FastAPI 应用

启动：uvicorn docbatch.api:create_app --factory
"""

from .app import GenerateRequest, create_app

__all__ = ["create_app", "GenerateRequest"]
