from django.urls import path
from . import views

app_name = "bookings"

urlpatterns = [
    # Owner calendar
    path("calendar/", views.calendar, name="calendar"),
    path("calendar/<str:venue_id>/slot/", views.slot_action, name="slot_action"),
    path("calendar/<str:venue_id>/bookings/<str:booking_id>/", views.booking_detail, name="booking_detail"),
    path("owner/", views.owner_bookings, name="owner_bookings"),

    # Player flow
    path("mine/", views.my_bookings, name="my_bookings"),
    path("venue/<str:venue_id>/book/", views.booking_create, name="booking_new"),
    path("checkout/success/", views.checkout_success, name="checkout_success"),
    path("<str:booking_id>/pay-share/", views.pay_split_share, name="pay_split_share"),
]
