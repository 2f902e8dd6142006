"""
Pydantic schemas for request/response validation.
"""
from .common import (
    CamelModel,
    SuccessResponse,
    MessageResponse,
    DeviceInfo,
    Pagination,
)
from .auth import (
    UserPreferences,
    UserRegister,
    UserLogin,
    UserResponse,
    AuthTokens,
    AuthResponse,
    CurrentUserResponse,
)
from .sessions import (
    Answer,
    SessionCreate,
    SessionUpdate,
    SessionResponse,
    ActiveSessionResponse,
    SessionMutationResponse,
    SessionAbandonResponse,
)
from .results import (
    SubmitRequest,
    SubmitResponse,
    AnalysisResponse,
    ResultResponse,
    ResultWithTest,
    ResultDetail,
    ResultTestInfo,
    ResultStatistics,
    ResultListResponse,
    ResultDetailResponse,
)
from .tests import (
    QuestionResponse,
    TestSummary,
    TestListItem,
    TestListResponse,
    TestDetail,
    TestDetailProgress,
    TestStatistics,
    TestDetailResponse,
)
from .dashboard import PersonalDashboardResponse
from .monitoring import (
    ErrorReport,
    PerformanceReport,
    AnalyticsReport,
    MonitoringBatch,
    MonitoringIngestResponse,
    MonitoringHealthResponse,
)

__all__ = [
    "CamelModel",
    "SuccessResponse",
    "MessageResponse",
    "DeviceInfo",
    "Pagination",
    # Auth
    "UserPreferences",
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "AuthTokens",
    "AuthResponse",
    "CurrentUserResponse",
    # Sessions
    "Answer",
    "SessionCreate",
    "SessionUpdate",
    "SessionResponse",
    "ActiveSessionResponse",
    "SessionMutationResponse",
    "SessionAbandonResponse",
    # Results
    "SubmitRequest",
    "SubmitResponse",
    "AnalysisResponse",
    "ResultResponse",
    "ResultWithTest",
    "ResultDetail",
    "ResultTestInfo",
    "ResultStatistics",
    "ResultListResponse",
    "ResultDetailResponse",
    # Catalogue
    "QuestionResponse",
    "TestSummary",
    "TestListItem",
    "TestListResponse",
    "TestDetail",
    "TestDetailProgress",
    "TestStatistics",
    "TestDetailResponse",
    # Dashboard
    "PersonalDashboardResponse",
    # Monitoring
    "ErrorReport",
    "PerformanceReport",
    "AnalyticsReport",
    "MonitoringBatch",
    "MonitoringIngestResponse",
    "MonitoringHealthResponse",
]
