from django.urls import path

from .views import (
    HealthView,
    UserListView, UserRoleView, UserDetailView, UserRoleChangeView, UserStatusChangeView,
    DonorSearchView,
    DonationListView, AllDonationsView, UserDonationsView, DonationDetailView, DonationStatusView,
    FundingView, CheckoutSessionView, PaymentSuccessView,
    BloodGroupsView, DistrictsView, UpazilasView,
)

urlpatterns = [
    path('', HealthView.as_view(), name='health'),

    # Users
    path('users', UserListView.as_view(), name='users'),
    path('users/role/<str:email>', UserRoleView.as_view(), name='user-role'),
    path('users/<str:email>', UserDetailView.as_view(), name='user-detail'),
    path('users/<str:email>/role', UserRoleChangeView.as_view(), name='user-role-change'),
    path('users/<str:email>/status', UserStatusChangeView.as_view(), name='user-status-change'),

    # Donors (public search)
    path('donors/search', DonorSearchView.as_view(), name='donor-search'),

    # Donation requests
    path('donations', DonationListView.as_view(), name='donations'),
    path('donations/user/<str:email>', UserDonationsView.as_view(), name='user-donations'),
    path('donations/<str:donation_id>', DonationDetailView.as_view(), name='donation-detail'),
    path('donations/<str:donation_id>/status', DonationStatusView.as_view(), name='donation-status'),
    path('all-donations', AllDonationsView.as_view(), name='all-donations'),

    # Funding
    path('funding', FundingView.as_view(), name='funding'),
    path('payment-checkout-session', CheckoutSessionView.as_view(), name='payment-checkout-session'),
    path('payment-success', PaymentSuccessView.as_view(), name='payment-success'),

    # Reference data
    path('blood-groups', BloodGroupsView.as_view(), name='blood-groups'),
    path('districts', DistrictsView.as_view(), name='districts'),
    path('upazilas', UpazilasView.as_view(), name='upazilas'),
    path('upazilas/<str:district_id>', UpazilasView.as_view(), name='upazilas-by-district'),
]
