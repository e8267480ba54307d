from src.studio.features.projects.handlers import router

__all__ = ["router"]
