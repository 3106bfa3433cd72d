"""
Model signal receivers.

Administrative writes (creating or editing elections and candidates) reach
the Tally Change Feed through here. Vote casting updates its counters with
queryset updates, which send no signals, and publishes explicitly instead.
"""
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from . import feed, ledger
from .models import BlockchainTransaction, Candidate, Election


@receiver(post_save, sender=Election, dispatch_uid="elections_api.election_saved")
def election_saved(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    if created:
        ledger.record_transaction(
            tx_type=BlockchainTransaction.TxType.election_created,
            data={"election_id": str(instance.pk), "title": instance.title},
        )
        feed.publish_on_commit(instance.pk, feed.election_change(instance, feed.INSERT))
    else:
        # save() never writes the counters; publish what the database holds.
        instance.refresh_from_db(fields=list(instance.counter_fields))
        feed.publish_on_commit(instance.pk, feed.election_change(instance, feed.UPDATE))


@receiver(post_save, sender=Candidate, dispatch_uid="elections_api.candidate_saved")
def candidate_saved(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    if created:
        ledger.record_transaction(
            tx_type=BlockchainTransaction.TxType.candidate_added,
            data={
                "election_id": str(instance.election_id),
                "candidate_id": str(instance.pk),
                "name": instance.name,
            },
        )
        feed.publish_on_commit(instance.election_id, feed.candidate_change(instance, feed.INSERT))
    else:
        instance.refresh_from_db(fields=list(instance.counter_fields))
        feed.publish_on_commit(instance.election_id, feed.candidate_change(instance, feed.UPDATE))


@receiver(post_delete, sender=Candidate, dispatch_uid="elections_api.candidate_deleted")
def candidate_deleted(sender, instance, **kwargs):
    feed.publish_on_commit(instance.election_id, feed.candidate_change(instance, feed.DELETE))
