"""
Clinical URLs - Appointments, slots, schedule windows, patient profiles
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AppointmentViewSet,
    AvailableSlotsView,
    PatientProfileView,
    ScheduleWindowViewSet,
    SlotProposalView,
)

router = DefaultRouter()
router.register(r'appointments', AppointmentViewSet, basename='appointment')
router.register(r'schedule-windows', ScheduleWindowViewSet, basename='schedule-window')

urlpatterns = [
    # Slot checks (read-only)
    path('slots/propose/', SlotProposalView.as_view(), name='slot-propose'),
    path('slots/available/', AvailableSlotsView.as_view(), name='slot-available'),

    path('patients/<uuid:pk>/profile/', PatientProfileView.as_view(), name='patient-profile'),

    # Standard routes via router
    path('', include(router.urls)),
]
