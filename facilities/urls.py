from django.urls import path
from . import views

app_name = "facilities"

urlpatterns = [
    # Lists & detail
    path("", views.VenueListView.as_view(), name="venue_list"),
    path("mine/", views.MyVenueListView.as_view(), name="my_venues"),
    path("new/", views.VenueCreateWizardView.as_view(), name="venue_new"),
    path("<str:venue_id>/", views.VenueDetailView.as_view(), name="venue_detail"),

    # Reviews
    path("<str:venue_id>/reviews/", views.review_create, name="review_create"),
    path("<str:venue_id>/reviews/<str:review_id>/reply/", views.review_reply, name="review_reply"),

    # Pricing rules
    path("<str:venue_id>/pricing-rules/", views.pricing_rules, name="pricing_rules"),
    path("<str:venue_id>/pricing-rules/<str:rule_id>/delete/", views.pricing_rule_delete, name="pricing_rule_delete"),
]
