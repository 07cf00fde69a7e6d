from django.urls import path
from . import views

app_name = "wallet"

urlpatterns = [
    path("", views.summary, name="summary"),
    path("topup/", views.topup, name="topup"),
    path("topup/confirm/", views.confirm_topup, name="confirm_topup"),
]
