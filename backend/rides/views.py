import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsDispatcher, IsDirector
from events.services import get_event, get_active_event, EventNotFoundError
from services import ride_management
from services.advisories import get_ride_traffic
from services.ride_management import DISPATCH_ERRORS, error_code_for, http_status_for
from .models import Ride, RideTransition, BlockedNumber, AddressBlacklist
from .serializers import (
    RideSerializer,
    RideRequestCreateSerializer,
    VersionedActionSerializer,
    AssignCarSerializer,
    BatchAssignSerializer,
    ReasonSerializer,
    RideEditSerializer,
    SplitRideSerializer,
    RideTransitionSerializer,
    BlockedNumberSerializer,
    AddressBlacklistSerializer,
)

logger = logging.getLogger(__name__)


def _error_response(exc):
    body = {
        'success': False,
        'error': error_code_for(exc),
        'message': str(exc),
    }
    current_version = getattr(exc, 'current_version', None)
    if current_version is not None:
        body['current_version'] = current_version
    return Response(body, status=http_status_for(exc))


def _ride_response(result, status_code=status.HTTP_200_OK, **extra):
    return Response({
        'success': True,
        'message': result.message,
        'ride': RideSerializer(result.ride).data,
        **extra,
    }, status=status_code)


# ==================== Phone Room ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_ride_request(request):
    """
    Take a ride request from a patron (phone room, app or walk-on).

    Goes to the active event unless event_id is given.
    """
    serializer = RideRequestCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)

    event_id = data.pop('event_id', None)
    if event_id is not None:
        try:
            event = get_event(event_id)
        except EventNotFoundError as e:
            return Response({'success': False, 'error': 'event_not_found', 'message': str(e)},
                            status=status.HTTP_404_NOT_FOUND)
    else:
        event = get_active_event()
        if event is None:
            return Response({
                'success': False,
                'error': 'event_not_active',
                'message': 'No active event. Ride requests are closed.',
            }, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = ride_management.create_ride_request(event, request.user, **data)
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result, status.HTTP_201_CREATED)


# ==================== Dispatch Board ====================

@api_view(['GET'])
@permission_classes([IsDispatcher])
def ride_queues(request, event_id):
    """Pending, active and finished rides of an event"""
    try:
        event = get_event(event_id)
    except EventNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)

    queues = ride_management.get_ride_queues(event)
    return Response({
        'event_id': event.id,
        'pending': RideSerializer(queues['pending'], many=True).data,
        'active': RideSerializer(queues['active'], many=True).data,
        'completed': RideSerializer(queues['completed'], many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsDispatcher])
def ride_detail(request, ride_id):
    """Ride with its action history, eligible cars and undo availability"""
    ride = get_object_or_404(Ride.objects.select_related('event', 'assigned_driver'), id=ride_id)
    transitions = RideTransition.objects.filter(ride=ride).select_related('performed_by')[:20]
    undoable = ride_management.get_undoable_transition(ride)

    data = {
        'ride': RideSerializer(ride).data,
        'transitions': RideTransitionSerializer(transitions, many=True).data,
        'can_undo': undoable is not None,
        'undo_action': undoable.action if undoable else None,
    }
    if ride.status == 'pending':
        data['cars'] = ride_management.eligible_cars_for_ride(ride)
    return Response(data)


@api_view(['POST'])
@permission_classes([IsDispatcher])
def assign_car(request, ride_id):
    serializer = AssignCarSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.assign_car(
            ride_id,
            serializer.validated_data['car_number'],
            serializer.validated_data['expected_version'],
            request.user,
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result)


@api_view(['POST'])
@permission_classes([IsDispatcher])
def assign_batch(request):
    """
    Assign several rides at once.

    POST Body:
    {
        "assignments": [
            {"ride_id": 12, "car_number": 3, "expected_version": 1},
            {"ride_id": 15, "car_number": 1, "expected_version": 2}
        ]
    }

    Always 200; each item reports its own outcome.
    """
    serializer = BatchAssignSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    results = ride_management.assign_cars(serializer.validated_data['assignments'], request.user)
    return Response({
        'success': all(r['success'] for r in results),
        'results': results,
    })


@api_view(['POST'])
@permission_classes([IsDispatcher])
def reassign_ride(request, ride_id):
    serializer = AssignCarSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.reassign_ride(
            ride_id,
            serializer.validated_data['car_number'],
            serializer.validated_data['expected_version'],
            request.user,
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result, previous_car_number=result.extra['previous_car_number'])


@api_view(['POST'])
@permission_classes([IsDispatcher])
def mark_picked_up(request, ride_id):
    serializer = VersionedActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.mark_picked_up(
            ride_id, serializer.validated_data['expected_version'], request.user
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result)


@api_view(['POST'])
@permission_classes([IsDispatcher])
def complete_ride(request, ride_id):
    serializer = VersionedActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.complete_ride(
            ride_id, serializer.validated_data['expected_version'], request.user
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result)


@api_view(['POST'])
@permission_classes([IsDispatcher])
def cancel_ride(request, ride_id):
    serializer = ReasonSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.cancel_ride(
            ride_id,
            serializer.validated_data['expected_version'],
            request.user,
            reason=serializer.validated_data.get('reason', ''),
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result)


@api_view(['POST'])
@permission_classes([IsDispatcher])
def terminate_ride(request, ride_id):
    serializer = ReasonSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.terminate_ride(
            ride_id,
            serializer.validated_data['expected_version'],
            request.user,
            reason=serializer.validated_data.get('reason', ''),
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result)


@api_view(['PATCH', 'POST'])
@permission_classes([IsDispatcher])
def edit_ride(request, ride_id):
    serializer = RideEditSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    fields = dict(serializer.validated_data)
    expected_version = fields.pop('expected_version')

    try:
        result = ride_management.update_ride_details(
            ride_id, expected_version, request.user, **fields
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result)


@api_view(['POST'])
@permission_classes([IsDispatcher])
def split_ride(request, ride_id):
    serializer = SplitRideSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.split_ride(
            ride_id,
            serializer.validated_data['riders_to_move'],
            serializer.validated_data['expected_version'],
            request.user,
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(
        result,
        status.HTTP_201_CREATED,
        split_ride=RideSerializer(result.extra['split_ride']).data,
    )


@api_view(['POST'])
@permission_classes([IsDispatcher])
def undo_ride_action(request, ride_id):
    serializer = VersionedActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        result = ride_management.undo_last_transition(
            ride_id, serializer.validated_data['expected_version'], request.user
        )
    except DISPATCH_ERRORS as e:
        return _error_response(e)

    return _ride_response(result, undone_action=result.extra['undone_action'])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ride_traffic(request, ride_id):
    """Traffic between the ride's car and its next stop"""
    ride = get_object_or_404(Ride.objects.select_related('event'), id=ride_id)
    traffic = get_ride_traffic(ride)
    if traffic is None:
        return Response({
            'available': False,
            'message': 'Traffic is unavailable for this ride right now',
        })
    return Response({'available': True, 'traffic': traffic})


# ==================== Blacklists ====================

@api_view(['GET', 'POST'])
@permission_classes([IsDispatcher])
def blocked_numbers(request):
    if request.method == 'GET':
        numbers = BlockedNumber.objects.select_related('added_by').order_by('-created_at')
        return Response(BlockedNumberSerializer(numbers, many=True).data)

    if not request.user.is_director:
        return Response({'error': 'Only directors can block numbers'},
                        status=status.HTTP_403_FORBIDDEN)

    serializer = BlockedNumberSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    blocked = serializer.save(added_by=request.user)
    logger.info("Blocked number %s (by %s)", blocked.number, request.user.username)
    return Response(BlockedNumberSerializer(blocked).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsDirector])
def blocked_number_detail(request, number_id):
    blocked = get_object_or_404(BlockedNumber, id=number_id)
    blocked.delete()
    logger.info("Unblocked number %s (by %s)", blocked.number, request.user.username)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsDispatcher])
def address_blacklist(request):
    """
    GET  -> every entry, pending requests first
    POST -> request a new address ban (needs director approval)
    """
    if request.method == 'GET':
        entries = AddressBlacklist.objects.select_related('requested_by', 'approved_by') \
            .order_by('-status', '-requested_at')
        return Response(AddressBlacklistSerializer(entries, many=True).data)

    serializer = AddressBlacklistSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry = serializer.save(requested_by=request.user)
    logger.info("Address ban requested: %s (by %s)", entry.address, request.user.username)
    return Response(AddressBlacklistSerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsDirector])
def approve_address(request, entry_id):
    entry = get_object_or_404(AddressBlacklist, id=entry_id)
    if entry.status == 'approved':
        return Response({'error': 'Address is already blacklisted'},
                        status=status.HTTP_400_BAD_REQUEST)

    entry = ride_management.approve_address(entry, request.user)
    return Response(AddressBlacklistSerializer(entry).data)


@api_view(['DELETE'])
@permission_classes([IsDirector])
def address_detail(request, entry_id):
    """Reject a pending request or lift an approved ban"""
    entry = get_object_or_404(AddressBlacklist, id=entry_id)
    entry.delete()
    logger.info("Address ban removed: %s (by %s)", entry.address, request.user.username)
    return Response(status=status.HTTP_204_NO_CONTENT)
