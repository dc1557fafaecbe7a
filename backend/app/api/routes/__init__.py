from app.api.routes.books import router as books_router
from app.api.routes.goals import router as goals_router
from app.api.routes.stats import router as stats_router
from app.api.routes.recommendations import router as recommendations_router

# 对外导出路由
__all__ = ["books_router", "goals_router", "stats_router", "recommendations_router"]
