from django.urls import path, include

from facilities import views as facility_views

urlpatterns = [
    path("", facility_views.home, name="home"),
    path("accounts/", include("accounts.urls")),
    path("venues/", include("facilities.urls")),
    path("bookings/", include("bookings.urls")),
    path("wallet/", include("wallet.urls")),
    path("notifications/", include("notifications.urls")),
    path("dashboard/", include("backoffice.urls")),
]
