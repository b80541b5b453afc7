from collections.abc import Mapping

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import reference
from .auth_utils import authenticate_request
from .db import serialize_doc
from .exceptions import ValidationFailed
from .services import get_services


def lifecycle():
    return get_services().lifecycle


def request_body(request):
    """The parsed JSON body, which must be an object."""
    if not isinstance(request.data, Mapping):
        raise ValidationFailed("Request body must be a JSON object")
    return request.data


class HealthView(APIView):
    def get(self, request):
        return Response({"status": "ok", "service": "BloodLink Backend Running"})


# ==========================================
#  USERS
# ==========================================

class UserListView(APIView):
    @authenticate_request
    def get(self, request):
        params = request.query_params
        result = lifecycle().list_accounts(
            request.caller,
            search=params.get('search', ''),
            page=params.get('page', 1),
            limit=params.get('limit', 10),
        )
        return Response(result)

    @authenticate_request
    def post(self, request):
        account = lifecycle().register(request.caller, request_body(request))
        return Response(serialize_doc(account), status=status.HTTP_201_CREATED)


class UserRoleView(APIView):
    """Called right after login to decide which dashboard to show."""

    @authenticate_request
    def get(self, request, email):
        return Response(lifecycle().get_role(request.caller, email))


class UserDetailView(APIView):
    @authenticate_request
    def get(self, request, email):
        return Response(serialize_doc(lifecycle().get_account(request.caller, email)))

    @authenticate_request
    def put(self, request, email):
        account = lifecycle().update_profile(request.caller, email, request_body(request))
        return Response(serialize_doc(account))


class UserRoleChangeView(APIView):
    @authenticate_request
    def patch(self, request, email):
        account = lifecycle().change_role(request.caller, email, request_body(request).get('role'))
        return Response(serialize_doc(account))


class UserStatusChangeView(APIView):
    @authenticate_request
    def patch(self, request, email):
        account = lifecycle().change_status(request.caller, email, request_body(request).get('status'))
        return Response(serialize_doc(account))


class DonorSearchView(APIView):
    def get(self, request):
        params = request.query_params
        donors = lifecycle().search_donors(
            blood_group=params.get('bloodGroup'),
            district=params.get('district'),
            upazila=params.get('upazila'),
        )
        return Response(donors)


# ==========================================
#  DONATION REQUESTS
# ==========================================

class DonationListView(APIView):
    def get(self, request):
        params = request.query_params
        result = lifecycle().list_public_donations(
            status=params.get('status'),
            page=params.get('page', 1),
            limit=params.get('limit', 10),
        )
        return Response(result)

    @authenticate_request
    def post(self, request):
        donation = lifecycle().create_donation(request.caller, request_body(request))
        return Response(serialize_doc(donation), status=status.HTTP_201_CREATED)


class AllDonationsView(APIView):
    @authenticate_request
    def get(self, request):
        params = request.query_params
        result = lifecycle().list_all_donations(
            request.caller,
            status=params.get('status'),
            search=params.get('search', ''),
            page=params.get('page', 1),
            limit=params.get('limit', 10),
        )
        return Response(result)


class UserDonationsView(APIView):
    @authenticate_request
    def get(self, request, email):
        params = request.query_params
        result = lifecycle().list_user_donations(
            request.caller,
            email,
            status=params.get('status'),
            search=params.get('search', ''),
            page=params.get('page', 1),
            limit=params.get('limit', 10),
        )
        return Response(result)


class DonationDetailView(APIView):
    @authenticate_request
    def get(self, request, donation_id):
        return Response(serialize_doc(lifecycle().get_donation(request.caller, donation_id)))

    @authenticate_request
    def put(self, request, donation_id):
        donation = lifecycle().update_donation(request.caller, donation_id, request_body(request))
        return Response(serialize_doc(donation))

    @authenticate_request
    def delete(self, request, donation_id):
        deleted = lifecycle().delete_donation(request.caller, donation_id)
        return Response({"success": True, "deletedCount": deleted})


class DonationStatusView(APIView):
    @authenticate_request
    def patch(self, request, donation_id):
        new_status = request_body(request).get('status')
        if not new_status:
            raise ValidationFailed("status is required")
        donation = lifecycle().transition(request.caller, donation_id, new_status)
        return Response(serialize_doc(donation))


# ==========================================
#  FUNDING
# ==========================================

class FundingView(APIView):
    @authenticate_request
    def get(self, request):
        params = request.query_params
        records = lifecycle().list_funding(
            request.caller,
            limit=params.get('limit', 10),
            session_id=params.get('session_id'),
        )
        return Response(records)


class CheckoutSessionView(APIView):
    @authenticate_request
    def post(self, request):
        url = lifecycle().start_checkout(request.caller, request_body(request))
        return Response({"url": url})


class PaymentSuccessView(APIView):
    """Called from the success page after the processor redirects back."""

    @authenticate_request
    def post(self, request):
        result = lifecycle().confirm_payment(request.caller, request_body(request).get('sessionId'))
        return Response(result.as_dict())


# ==========================================
#  REFERENCE DATA
# ==========================================

class BloodGroupsView(APIView):
    def get(self, request):
        return Response(reference.BLOOD_GROUPS)


class DistrictsView(APIView):
    def get(self, request):
        return Response(reference.districts())


class UpazilasView(APIView):
    def get(self, request, district_id=None):
        if district_id is None:
            return Response(reference.upazilas())
        return Response(reference.upazilas_by_district(district_id))
