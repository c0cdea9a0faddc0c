"""
Clinical viewsets for appointments, slots, schedule windows and patient
profiles.

Views only parse input and pick a serializer. Authorization beyond the role
gate, conflict checks and state changes happen in apps.clinical.services.
"""
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.access import ensure_can_act_on_appointment
from apps.authz.models import RoleChoices
from apps.authz.permissions import RoleGatePermission
from apps.clinical import services
from apps.clinical.models import Appointment, ScheduleWindow
from apps.clinical.serializers import (
    AnnotateSerializer,
    AppointmentCreateSerializer,
    AppointmentSerializer,
    AvailableSlotsQuerySerializer,
    PatientProfileSerializer,
    RescheduleSerializer,
    ScheduleWindowCreateSerializer,
    ScheduleWindowSerializer,
    ScheduleWindowUpdateSerializer,
    SlotProposalSerializer,
    TransitionSerializer,
    WindowAvailabilitySerializer,
)
from apps.clinical.slots import available_slots, propose_slot
from apps.core.exceptions import DenialReason, Forbidden

UUID_PATTERN = '[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}'


# ============================================================================
# Appointments
# ============================================================================

class AppointmentViewSet(mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    """
    ViewSet for Appointment endpoints.

    Endpoints:
    - GET  /api/v1/clinical/appointments/
    - POST /api/v1/clinical/appointments/
    - GET  /api/v1/clinical/appointments/{id}/
    - POST /api/v1/clinical/appointments/{id}/transition/
    - POST /api/v1/clinical/appointments/{id}/reschedule/
    - POST /api/v1/clinical/appointments/{id}/annotate/

    RBAC:
    - Admin/Staff: every appointment (staff need a complete profile and,
      for licensed positions, a valid license)
    - Patient: own appointments only; a foreign or missing id is a 403

    Status never changes through PATCH; use /transition/.
    """
    permission_classes = [RoleGatePermission]
    require_complete_profile = True
    serializer_class = AppointmentSerializer
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):
        """
        Filters:
        - status: exact status
        - date_from / date_to: inclusive date range
        - doctor_id, patient_id: participant UUIDs
        - mine=true: staff only, appointments where the caller is the doctor
        """
        user = self.request.user
        queryset = Appointment.objects.select_related('patient', 'doctor', 'service')

        if user.role == RoleChoices.PATIENT:
            queryset = queryset.filter(patient=user)
        elif user.role == RoleChoices.STAFF:
            if self.request.query_params.get('mine', 'false').lower() == 'true':
                queryset = queryset.filter(doctor=user)

        params = self.request.query_params
        status_filter = params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        date_from = params.get('date_from')
        if date_from:
            queryset = queryset.filter(date__gte=date_from)

        date_to = params.get('date_to')
        if date_to:
            queryset = queryset.filter(date__lte=date_to)

        doctor_id = params.get('doctor_id')
        if doctor_id:
            queryset = queryset.filter(doctor_id=doctor_id)

        patient_id = params.get('patient_id')
        if patient_id:
            queryset = queryset.filter(patient_id=patient_id)

        return queryset.order_by('date', 'time')

    def retrieve(self, request, *args, **kwargs):
        ensure_can_act_on_appointment(request.user, kwargs['pk'])
        return super().retrieve(request, *args, **kwargs)

    @extend_schema(request=AppointmentCreateSerializer, responses={201: AppointmentSerializer})
    def create(self, request, *args, **kwargs):
        """
        POST /api/v1/clinical/appointments/

        Returns:
            201: Appointment created (status=scheduled)
            403: Caller may not book (patients unless self-booking is enabled)
            409: SLOT_CONFLICT with the conflicting interval
            422: INVALID_ROLE when doctor/patient ids have the wrong role
        """
        serializer = AppointmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        appointment = services.create_appointment(
            request.user,
            patient_id=data['patient_id'],
            doctor_id=data['doctor_id'],
            date=data['date'],
            start_time=data['time'],
            duration_minutes=data['duration_minutes'],
            service_id=data['service_id'],
            reason=data['reason'],
            notes=data['notes'],
        )
        return Response(AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=TransitionSerializer, responses=AppointmentSerializer)
    @action(detail=True, methods=['post'], url_path='transition')
    def transition(self, request, pk=None):
        """
        POST /api/v1/clinical/appointments/{id}/transition/

        Request body:
        {
            "action": "cancel",           # confirm|check_in|start|complete|cancel|no_show
            "reason": "Patient is ill",   # required for cancel
            "notes": "Filling done"       # appended on complete
        }

        Returns:
            200: Transition applied
            403: Role/ownership denied or CANCELLATION_WINDOW_CLOSED
            409: INVALID_TRANSITION with current_state and rule
        """
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appointment = services.transition_appointment(
            pk,
            serializer.validated_data['action'],
            request.user,
            reason=serializer.validated_data['reason'],
            notes=serializer.validated_data['notes'],
        )
        return Response(AppointmentSerializer(appointment).data)

    @extend_schema(request=RescheduleSerializer, responses={201: AppointmentSerializer})
    @action(detail=True, methods=['post'], url_path='reschedule')
    def reschedule(self, request, pk=None):
        """
        POST /api/v1/clinical/appointments/{id}/reschedule/

        Cancels the appointment (cutoff applies) and returns the new one.
        """
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        replacement = services.reschedule_appointment(
            pk,
            request.user,
            new_date=serializer.validated_data['date'],
            new_time=serializer.validated_data['time'],
            duration_minutes=serializer.validated_data['duration_minutes'],
            reason=serializer.validated_data['reason'],
        )
        return Response(AppointmentSerializer(replacement).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=AnnotateSerializer, responses=AppointmentSerializer)
    @action(detail=True, methods=['post'], url_path='annotate')
    def annotate(self, request, pk=None):
        """POST /api/v1/clinical/appointments/{id}/annotate/ - works in any state."""
        serializer = AnnotateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appointment = services.annotate_appointment(pk, request.user, serializer.validated_data['note'])
        return Response(AppointmentSerializer(appointment).data)


# ============================================================================
# Slots
# ============================================================================

class SlotProposalView(APIView):
    """
    POST /api/v1/clinical/slots/propose/ - Read-only slot pre-check.

    Response:
    - {"available": true}
    - {"available": false, "conflict": "doctor_busy", "date": ..., ...}

    Patients may only check slots for themselves.
    """
    permission_classes = [RoleGatePermission]

    @extend_schema(request=SlotProposalSerializer)
    def post(self, request):
        serializer = SlotProposalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if request.user.role == RoleChoices.PATIENT and data['patient_id'] != request.user.pk:
            raise Forbidden(DenialReason.RESOURCE_ACCESS_DENIED)

        conflict = propose_slot(
            data['doctor_id'],
            data['patient_id'],
            data['date'],
            data['time'].replace(second=0, microsecond=0),
            data['duration_minutes'],
        )
        if conflict is None:
            return Response({'available': True})
        return Response({'available': False, **conflict.as_dict()})


class AvailableSlotsView(APIView):
    """
    GET /api/v1/clinical/slots/available/?doctor_id=&date=&duration_minutes=

    Free slots of the doctor on that date, past slots excluded.
    """
    permission_classes = [RoleGatePermission]

    @extend_schema(parameters=[AvailableSlotsQuerySerializer])
    def get(self, request):
        serializer = AvailableSlotsQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        slots = available_slots(data['doctor_id'], data['date'], duration_minutes=data['duration_minutes'])
        return Response({
            'doctor_id': str(data['doctor_id']),
            'date': data['date'].isoformat(),
            'duration_minutes': data['duration_minutes'],
            'slots': slots,
        })


# ============================================================================
# Schedule windows
# ============================================================================

class ScheduleWindowViewSet(mixins.ListModelMixin,
                            mixins.RetrieveModelMixin,
                            mixins.UpdateModelMixin,
                            mixins.DestroyModelMixin,
                            viewsets.GenericViewSet):
    """
    ViewSet for ScheduleWindow endpoints.

    Endpoints:
    - GET  /api/v1/clinical/schedule-windows/?staff_id=&date=
    - POST /api/v1/clinical/schedule-windows/
    - PUT/PATCH /api/v1/clinical/schedule-windows/{id}/  (before the window starts)
    - DELETE /api/v1/clinical/schedule-windows/{id}/  (no booked appointments)
    - POST /api/v1/clinical/schedule-windows/{id}/availability/

    RBAC:
    - Admin: every schedule (manage_schedules)
    - Staff: own schedule only (manage_own_schedule)
    - Patient: 403 ROLE_MISMATCH
    """
    permission_classes = [RoleGatePermission]
    required_roles = (RoleChoices.ADMIN, RoleChoices.STAFF)
    serializer_class = ScheduleWindowSerializer
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):
        user = self.request.user
        queryset = ScheduleWindow.objects.all()
        if user.role == RoleChoices.STAFF:
            queryset = queryset.filter(staff=user)

        staff_id = self.request.query_params.get('staff_id')
        if staff_id:
            queryset = queryset.filter(staff_id=staff_id)

        date = self.request.query_params.get('date')
        if date:
            queryset = queryset.filter(date=date)

        return queryset.order_by('date', 'start_time')

    @extend_schema(request=ScheduleWindowCreateSerializer, responses={201: ScheduleWindowSerializer})
    def create(self, request, *args, **kwargs):
        serializer = ScheduleWindowCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        window = services.create_schedule_window(request.user, **serializer.validated_data)
        return Response(ScheduleWindowSerializer(window).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=ScheduleWindowUpdateSerializer, responses=ScheduleWindowSerializer)
    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = ScheduleWindowUpdateSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        window = services.update_schedule_window(kwargs['pk'], request.user, serializer.validated_data)
        return Response(ScheduleWindowSerializer(window).data)

    def destroy(self, request, *args, **kwargs):
        services.delete_schedule_window(kwargs['pk'], request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=WindowAvailabilitySerializer, responses=ScheduleWindowSerializer)
    @action(detail=True, methods=['post'], url_path='availability')
    def availability(self, request, pk=None):
        serializer = WindowAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        window = services.set_window_availability(
            pk,
            request.user,
            serializer.validated_data['is_available'],
            reason=serializer.validated_data['reason'],
        )
        return Response(ScheduleWindowSerializer(window).data)


# ============================================================================
# Patient profile
# ============================================================================

class PatientProfileView(APIView):
    """
    GET   /api/v1/clinical/patients/{id}/profile/
    PATCH /api/v1/clinical/patients/{id}/profile/

    RBAC:
    - Admin: read and update any profile
    - Staff: read profiles of patients they treated or wrote records for
    - Patient: read and update their own profile
    """
    permission_classes = [RoleGatePermission]

    @extend_schema(responses=PatientProfileSerializer)
    def get(self, request, pk):
        profile = services.get_patient_profile(request.user, pk)
        return Response(PatientProfileSerializer(profile).data)

    @extend_schema(request=PatientProfileSerializer, responses=PatientProfileSerializer)
    def patch(self, request, pk):
        serializer = PatientProfileSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        profile = services.update_patient_profile(request.user, pk, serializer.validated_data)
        return Response(PatientProfileSerializer(profile).data)
