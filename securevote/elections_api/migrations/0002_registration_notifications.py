import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('elections_api', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='notificationlog',
            name='election',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='notification_logs', to='elections_api.election'),
        ),
        migrations.AlterField(
            model_name='notificationlog',
            name='notification_type',
            field=models.CharField(choices=[('deadline_reminder_24h', '24h deadline reminder'), ('deadline_reminder_2h', '2h deadline reminder'), ('low_turnout_auto', 'Low turnout alert'), ('results', 'Results'), ('sms_deadline_reminder_24h', '24h deadline reminder (SMS)'), ('sms_deadline_reminder_2h', '2h deadline reminder (SMS)'), ('sms_low_turnout_auto', 'Low turnout alert (SMS)'), ('sms_results', 'Results (SMS)'), ('voter_approved', 'Registration approved'), ('voter_rejected', 'Registration rejected')], max_length=32),
        ),
    ]
