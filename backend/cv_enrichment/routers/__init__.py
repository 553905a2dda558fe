from .external_data import router as external_data_router

__all__ = ["external_data_router"]
