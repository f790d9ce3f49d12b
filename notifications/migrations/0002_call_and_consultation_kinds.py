from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("notifications", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="notification",
            name="kind",
            field=models.CharField(
                choices=[
                    ("general", "General"),
                    ("case_request", "Case request"),
                    ("case_offer", "Case offer"),
                    ("request_rejected", "Request rejected"),
                    ("assignment", "Assignment"),
                    ("case_status", "Case status"),
                    ("direct_connection", "Direct connection"),
                    ("verification", "Verification"),
                    ("call", "Call"),
                    ("consultation", "Consultation"),
                ],
                default="general",
                max_length=30,
            ),
        ),
    ]
