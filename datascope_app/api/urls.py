from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from datascope_app.chat.views import ChatView

from . import views

router = DefaultRouter()
router.register(r"surveys", views.SurveyViewSet, basename="survey")
router.register(r"companies", views.CompanyViewSet, basename="company")
router.register(r"company-users", views.CompanyUserViewSet, basename="company-user")
router.register(r"activity-logs", views.ActivityLogViewSet, basename="activity-log")
router.register(r"survey-templates", views.SurveyTemplateViewSet, basename="survey-template")
router.register(r"notices", views.NoticeViewSet, basename="notice")
router.register(r"prizes", views.PrizeViewSet, basename="prize")
router.register(r"giveaways", views.GiveawayViewSet, basename="giveaway")

urlpatterns = [
    path("health", views.healthcheck, name="healthcheck"),
    path("token", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh", TokenRefreshView.as_view(), name="token_refresh"),
    path("auth/sign-in", views.sign_in, name="sign-in"),
    path("me/", views.me, name="me"),
    path(
        "functions/create-company-and-admin",
        views.CreateCompanyAndAdminView.as_view(),
        name="create-company-and-admin",
    ),
    path("functions/create-user", views.CreateUserView.as_view(), name="create-user"),
    path(
        "functions/reset-user-password",
        views.ResetUserPasswordView.as_view(),
        name="reset-user-password",
    ),
    path("chat/<str:provider>/", ChatView.as_view(), name="chat"),
    path("", include(router.urls)),
]
