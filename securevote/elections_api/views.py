import logging
import uuid

from django.http import Http404
from rest_framework import generics, status, views
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from .exceptions import CandidateMismatch, DuplicateVote, NotEligible, StorageUnavailable, VotingError
from .ledger import verify_transaction
from .models import BlockchainTransaction, Election, NotificationLog, Vote
from .notifications import run_notification_sweep
from .serializers import (
    CastVoteSerializer,
    NotificationLogSerializer,
    SweepResultSerializer,
    TransactionSerializer,
    VoteReceiptSerializer,
)
from .services import cast_vote, get_election_tally

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    NotEligible: status.HTTP_403_FORBIDDEN,
    DuplicateVote: status.HTTP_409_CONFLICT,
    CandidateMismatch: status.HTTP_400_BAD_REQUEST,
    StorageUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _error_response(exc):
    http_status = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    response = Response(
        {
            "status": "error",
            "code": exc.code,
            "message": exc.message,
            "retryable": exc.retryable,
        },
        status=http_status,
    )
    if exc.retryable:
        response["Retry-After"] = "1"
    return response


# ---
# API Endpoint 1: Cast Vote
# ---
class CastVoteView(views.APIView):
    """
    Records the authenticated user's vote and returns the receipt
    (transaction hash and block number).

    Permissions:
    - Must be logged in. Approval is checked by the service.
    """
    permission_classes = [IsAuthenticated]
    serializer_class = CastVoteSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.serializer_class(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            receipt = cast_vote(
                voter=request.user,
                election_id=serializer.validated_data['election_id'],
                candidate_id=serializer.validated_data['candidate_id'],
            )
        except VotingError as exc:
            return _error_response(exc)

        return Response(
            {
                "status": "success",
                "message": "Vote cast and confirmed.",
                "receipt": VoteReceiptSerializer(receipt).data,
            },
            status=status.HTTP_201_CREATED
        )


# ---
# API Endpoint 2: Public Tally
# ---
class ElectionTallyView(views.APIView):
    """
    Read-only tally for one election: totals plus candidates ordered by
    votes. Live updates are on the websocket route ws/tally/<election_id>/.

    Permissions:
    - AllowAny: Anyone can view this.
    """
    permission_classes = [AllowAny]

    def get(self, request, election_id, *args, **kwargs):
        try:
            payload = get_election_tally(election_id)
        except Election.DoesNotExist:
            raise Http404("Election not found.")
        return Response(payload, status=status.HTTP_200_OK)


# ---
# API Endpoint 3: Verify Receipt
# ---
class TransactionDetailView(views.APIView):
    """
    Looks up the transaction record behind a receipt hash.

    Permissions:
    - AllowAny: receipts are public, voters are not.
    """
    permission_classes = [AllowAny]

    def get(self, request, tx_hash, *args, **kwargs):
        try:
            transaction_record = verify_transaction(tx_hash)
        except BlockchainTransaction.DoesNotExist:
            raise Http404("Transaction not found.")

        payload = TransactionSerializer(transaction_record).data
        vote = Vote.objects.filter(tx_hash=tx_hash).only("status").first()
        payload["vote_status"] = vote.status if vote else None
        return Response(payload, status=status.HTTP_200_OK)


# ---
# API Endpoints 4 & 5: Admin notifications
# ---
class NotificationSweepView(views.APIView):
    """
    Admin-only endpoint to run the notification sweep right away instead of
    waiting for the next scheduler tick. The cooldowns still apply.
    """
    permission_classes = [IsAdminUser]

    def post(self, request, *args, **kwargs):
        results = run_notification_sweep()
        return Response(
            {
                "status": "success",
                "processed": SweepResultSerializer(results, many=True).data,
            },
            status=status.HTTP_200_OK
        )


class NotificationLogListView(generics.ListAPIView):
    """
    Admin-only notification history, newest first. Filter with
    ?election=<uuid> and/or ?type=<notification_type>.
    """
    permission_classes = [IsAdminUser]
    serializer_class = NotificationLogSerializer

    def get_queryset(self):
        queryset = NotificationLog.objects.all()
        election_id = self.request.query_params.get('election')
        notification_type = self.request.query_params.get('type')
        if election_id:
            try:
                election_id = uuid.UUID(election_id)
            except ValueError:
                raise ValidationError({'election': 'Not a valid UUID.'})
            queryset = queryset.filter(election_id=election_id)
        if notification_type:
            queryset = queryset.filter(notification_type=notification_type)
        return queryset[:500]
