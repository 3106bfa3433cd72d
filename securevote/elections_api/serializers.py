from rest_framework import serializers

from .models import BlockchainTransaction, Candidate, Election, NotificationLog, Vote


# --- Serializers for the voter (Vote Casting) ---

class CastVoteSerializer(serializers.Serializer):
    """
    Validates the shape of a cast request. Eligibility is decided by
    services.cast_vote, not here, so that every rule lives in one place.
    """
    election_id = serializers.UUIDField()
    candidate_id = serializers.UUIDField()


class VoteReceiptSerializer(serializers.Serializer):
    transaction_hash = serializers.CharField(source="tx_hash")
    block_number = serializers.IntegerField()


# --- Serializers for the Tally Change Feed and the public tally ---

class ElectionSerializer(serializers.ModelSerializer):
    """
    Used by the admin API and as the 'row' of an 'elections' feed event.
    """

    class Meta:
        model = Election
        fields = ['id', 'title', 'description', 'start_date', 'end_date',
                  'status', 'total_votes', 'updated_at']
        read_only_fields = ['id', 'total_votes', 'updated_at']


class CandidateSerializer(serializers.ModelSerializer):
    election_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Candidate
        fields = ['id', 'election_id', 'name', 'party', 'bio', 'vote_count', 'updated_at']
        read_only_fields = ['id', 'vote_count', 'updated_at']


class PublicVoteSerializer(serializers.ModelSerializer):
    """
    The 'row' of a 'votes' feed event. Never exposes who voted.
    """
    election_id = serializers.UUIDField(read_only=True)
    candidate_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Vote
        fields = ['id', 'election_id', 'candidate_id', 'tx_hash', 'block_number',
                  'status', 'created_at']


class TransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = BlockchainTransaction
        fields = ['tx_hash', 'block_number', 'tx_type', 'data', 'confirmations', 'created_at']


# --- Serializers for the Admin ---

class NotificationLogSerializer(serializers.ModelSerializer):
    election_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = NotificationLog
        fields = ['id', 'election_id', 'recipient', 'recipient_name', 'notification_type',
                  'status', 'sent_at', 'error_message']


class SweepResultSerializer(serializers.Serializer):
    election_id = serializers.UUIDField()
    election_title = serializers.CharField()
    notification_type = serializers.CharField()
    sent = serializers.IntegerField()
    failed = serializers.IntegerField()
    turnout = serializers.FloatField()
