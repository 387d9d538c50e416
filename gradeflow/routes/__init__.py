from .assessments import router as assessments_router
from .courses import router as courses_router
from .grades import router as grades_router
from .materials import router as materials_router
from .notifications import router as notifications_router
from .reports import router as reports_router
from .submissions import router as submissions_router
from .system import router as system_router
from .users import router as users_router

ALL_ROUTERS = (
    system_router,
    users_router,
    courses_router,
    materials_router,
    assessments_router,
    submissions_router,
    grades_router,
    notifications_router,
    reports_router,
)
