from .diagnostics import router as diagnostics_router
from .lld_question import router as lld_question_router
from .model_comparison import router as model_comparison_router

__all__ = ["diagnostics_router", "lld_question_router", "model_comparison_router"]
