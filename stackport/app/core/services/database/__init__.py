from .db_manage import DbManageService, build_engine

__all__ = ["DbManageService", "build_engine"]
