from django.urls import include, path
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from crm.api import views

router = DefaultRouter()
router.register('leads', views.LeadViewSet, basename='lead')
router.register('tasks', views.TaskViewSet, basename='task')
router.register('projects', views.ProjectViewSet, basename='project')
router.register('leaves', views.LeaveViewSet, basename='leave')
router.register('users', views.UserViewSet, basename='user')
router.register('announcements', views.AnnouncementViewSet, basename='announcement')
router.register('activity-logs', views.ActivityLogViewSet, basename='activity-log')

urlpatterns = [
    path('auth/token/', views.LoginIdTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', views.CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', views.MeView.as_view(), name='me'),
    path('view-config/', views.ViewConfigView.as_view(), name='view_config'),
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),
    path('reports/', views.ReportsView.as_view(), name='reports'),
    path('reminders/', views.RemindersView.as_view(), name='reminders'),
    path('branding/', views.BrandingView.as_view(), name='branding'),
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('', include(router.urls)),
]
