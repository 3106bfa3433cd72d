from django.contrib import admin
from django.db import transaction

from .models import BlockchainTransaction, Candidate, Election, NotificationLog, Vote, VoterProfile
from .notifications import send_approval_notification
from .services import set_voter_approval


class CandidateInline(admin.TabularInline):
    model = Candidate
    extra = 0
    fields = ('name', 'party', 'bio', 'vote_count')
    readonly_fields = ('vote_count',)

    def has_add_permission(self, request, obj=None):
        return obj is None or obj.status != Election.Status.completed

    def has_delete_permission(self, request, obj=None):
        return obj is None or obj.status != Election.Status.completed


@admin.register(Election)
class ElectionAdmin(admin.ModelAdmin):
    """
    Counters are maintained by vote casting and are never edited by hand.
    """
    list_display = ('title', 'status', 'start_date', 'end_date', 'total_votes')
    list_filter = ('status',)
    search_fields = ('title',)
    readonly_fields = ('total_votes', 'created_at', 'updated_at')
    inlines = [CandidateInline]

    def get_readonly_fields(self, request, obj=None):
        fields = super().get_readonly_fields(request, obj)
        if obj is not None and obj.status == Election.Status.completed:
            return (*fields, 'status')
        return fields


@admin.register(Candidate)
class CandidateAdmin(admin.ModelAdmin):
    list_display = ('name', 'party', 'election', 'vote_count')
    list_filter = ('election',)
    search_fields = ('name', 'party')
    raw_id_fields = ('election',)
    readonly_fields = ('vote_count',)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.election.status == Election.Status.completed:
            return False
        return super().has_delete_permission(request, obj)


@admin.register(VoterProfile)
class VoterProfileAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'is_approved', 'has_voted')
    list_filter = ('is_approved', 'has_voted')
    search_fields = ('name', 'email', 'user__username')
    raw_id_fields = ('user',)
    readonly_fields = ('has_voted',)
    actions = ['approve_voters', 'reject_voters']

    @admin.action(description='Approve selected voters and notify them')
    def approve_voters(self, request, queryset):
        for profile in queryset:
            set_voter_approval(profile=profile, approved=True)
        self.message_user(request, f'Approved {queryset.count()} voter(s).')

    @admin.action(description='Reject selected voters and notify them')
    def reject_voters(self, request, queryset):
        for profile in queryset:
            set_voter_approval(profile=profile, approved=False)
        self.message_user(request, f'Rejected {queryset.count()} voter(s).')

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        if change and 'is_approved' in form.changed_data:
            transaction.on_commit(lambda: send_approval_notification(profile=obj))


class ReadOnlyAdmin(admin.ModelAdmin):
    """
    Ledger and log rows are append-only. No one edits them via the admin.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Vote)
class VoteAdmin(ReadOnlyAdmin):
    list_display = ('tx_hash', 'election', 'block_number', 'status', 'created_at')
    list_filter = ('election', 'status')
    search_fields = ('tx_hash',)


@admin.register(BlockchainTransaction)
class BlockchainTransactionAdmin(ReadOnlyAdmin):
    list_display = ('tx_hash', 'tx_type', 'block_number', 'confirmations', 'created_at')
    list_filter = ('tx_type',)
    search_fields = ('tx_hash',)


@admin.register(NotificationLog)
class NotificationLogAdmin(ReadOnlyAdmin):
    list_display = ('notification_type', 'recipient', 'election', 'status', 'sent_at')
    list_filter = ('notification_type', 'status', 'election')
    search_fields = ('recipient', 'recipient_name')
