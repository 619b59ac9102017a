from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    # Phone room
    path('request/', views.create_ride_request, name='create-ride'),

    # Dispatch board
    path('events/<int:event_id>/queues/', views.ride_queues, name='ride-queues'),
    path('assign-batch/', views.assign_batch, name='assign-batch'),
    path('<int:ride_id>/', views.ride_detail, name='ride-detail'),
    path('<int:ride_id>/assign/', views.assign_car, name='assign-car'),
    path('<int:ride_id>/reassign/', views.reassign_ride, name='reassign-ride'),
    path('<int:ride_id>/pickup/', views.mark_picked_up, name='pickup-ride'),
    path('<int:ride_id>/complete/', views.complete_ride, name='complete-ride'),
    path('<int:ride_id>/cancel/', views.cancel_ride, name='cancel-ride'),
    path('<int:ride_id>/terminate/', views.terminate_ride, name='terminate-ride'),
    path('<int:ride_id>/edit/', views.edit_ride, name='edit-ride'),
    path('<int:ride_id>/split/', views.split_ride, name='split-ride'),
    path('<int:ride_id>/undo/', views.undo_ride_action, name='undo-ride'),
    path('<int:ride_id>/traffic/', views.ride_traffic, name='ride-traffic'),

    # Blacklists
    path('blacklist/numbers/', views.blocked_numbers, name='blocked-numbers'),
    path('blacklist/numbers/<int:number_id>/', views.blocked_number_detail, name='blocked-number-detail'),
    path('blacklist/addresses/', views.address_blacklist, name='address-blacklist'),
    path('blacklist/addresses/<int:entry_id>/approve/', views.approve_address, name='approve-address'),
    path('blacklist/addresses/<int:entry_id>/', views.address_detail, name='address-detail'),
]
