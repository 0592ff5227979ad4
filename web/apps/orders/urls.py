from django.urls import path
from .views import GuestOrderView, MyOrdersView, OrdersCollectionView, OrderStatusView, TrackOrderView
app_name = "orders"

urlpatterns = [
    path("", OrdersCollectionView.as_view(), name="orders-collection"),  # GET admin list / POST place
    path("guest/", GuestOrderView.as_view(), name="orders-guest"),
    path("mine/", MyOrdersView.as_view(), name="orders-mine"),
    path("status/", OrderStatusView.as_view(), name="orders-status"),
    path("track/<str:tracking_id>/", TrackOrderView.as_view(), name="orders-track"),
]
