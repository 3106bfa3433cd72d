import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Election',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('start_date', models.DateTimeField()),
                ('end_date', models.DateTimeField()),
                ('status', models.CharField(choices=[('upcoming', 'Upcoming'), ('active', 'Active'), ('completed', 'Completed')], db_index=True, default='upcoming', max_length=16)),
                ('total_votes', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'elections',
                'ordering': ['-start_date'],
            },
        ),
        migrations.CreateModel(
            name='BlockchainTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tx_hash', models.CharField(max_length=66, unique=True)),
                ('block_number', models.PositiveBigIntegerField(db_index=True)),
                ('tx_type', models.CharField(choices=[('vote', 'Vote'), ('election_created', 'Election created'), ('candidate_added', 'Candidate added')], max_length=32)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('confirmations', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
            ],
            options={
                'db_table': 'blockchain_transactions',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Candidate',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('party', models.CharField(blank=True, default='', max_length=255)),
                ('bio', models.TextField(blank=True, default='')),
                ('vote_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('election', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='candidates', to='elections_api.election')),
            ],
            options={
                'db_table': 'candidates',
                'ordering': ['-vote_count', 'name'],
            },
        ),
        migrations.CreateModel(
            name='VoterProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('email', models.EmailField(blank=True, default='', max_length=254)),
                ('phone', models.CharField(blank=True, default='', help_text='Optional, used for SMS notifications.', max_length=32)),
                ('is_approved', models.BooleanField(db_index=True, default=False)),
                ('has_voted', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='voter_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'profiles',
            },
        ),
        migrations.CreateModel(
            name='Vote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('voter_hash', models.CharField(max_length=14)),
                ('tx_hash', models.CharField(max_length=66, unique=True)),
                ('block_number', models.PositiveBigIntegerField()),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('rejected', 'Rejected')], default='confirmed', max_length=16)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('candidate', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='votes', to='elections_api.candidate')),
                ('election', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='votes', to='elections_api.election')),
                ('voter', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='votes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'votes',
                'ordering': ['created_at'],
                'constraints': [models.UniqueConstraint(fields=('election', 'voter'), name='uniq_vote_per_voter_election')],
            },
        ),
        migrations.CreateModel(
            name='NotificationLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('recipient', models.CharField(max_length=255)),
                ('recipient_name', models.CharField(blank=True, default='', max_length=255)),
                ('notification_type', models.CharField(choices=[('deadline_reminder_24h', '24h deadline reminder'), ('deadline_reminder_2h', '2h deadline reminder'), ('low_turnout_auto', 'Low turnout alert'), ('results', 'Results'), ('sms_deadline_reminder_24h', '24h deadline reminder (SMS)'), ('sms_deadline_reminder_2h', '2h deadline reminder (SMS)'), ('sms_low_turnout_auto', 'Low turnout alert (SMS)'), ('sms_results', 'Results (SMS)')], max_length=32)),
                ('status', models.CharField(choices=[('sent', 'Sent'), ('failed', 'Failed')], max_length=16)),
                ('sent_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('error_message', models.TextField(blank=True, default='')),
                ('election', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notification_logs', to='elections_api.election')),
            ],
            options={
                'db_table': 'notification_logs',
                'ordering': ['-sent_at'],
                'indexes': [models.Index(fields=['election', 'notification_type', 'sent_at'], name='notif_dedup_idx')],
            },
        ),
    ]
