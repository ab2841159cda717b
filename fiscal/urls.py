# fiscal/urls.py

from django.urls import path

from fiscal.views.range_views import (
    allocate_number_view,
    range_detail_view,
    range_list_view,
    release_number_view,
)

app_name = "fiscal"

urlpatterns = [
    path("ranges", range_list_view, name="range_list"),
    path("ranges/", range_list_view),

    path("ranges/<str:kind>", range_detail_view, name="range_detail"),
    path("ranges/<str:kind>/", range_detail_view),

    # issue a number (before persisting the invoice)
    path("ranges/<str:kind>/allocate", allocate_number_view, name="range_allocate"),
    path("ranges/<str:kind>/allocate/", allocate_number_view),

    # record a released number (together with the invoice deletion)
    path("ranges/<str:kind>/release", release_number_view, name="range_release"),
    path("ranges/<str:kind>/release/", release_number_view),
]
