"""
Realtime app for WebSocket communication with dispatch screens and car crews.

Key Components:
    - consumers/: DispatchConsumer (one per dispatch screen) and CarConsumer (one per car)
    - notifications.py: group_send helpers used by the service layer
    - middleware.py: JWT authentication for WebSocket connections

Usage:
    from realtime.notifications import notify_event_group, notify_car_group, notify_ride_changed
"""
