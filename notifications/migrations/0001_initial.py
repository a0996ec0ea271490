from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(choices=[("upvote", "Upvote"), ("comment", "Comment"), ("follow", "Follow"), ("message", "Message"), ("application_update", "Grant application update")], max_length=50)),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField(blank=True, null=True)),
                ("reference_type", models.CharField(choices=[("project", "Project"), ("post", "Post"), ("user", "User"), ("grant", "Grant"), ("none", "None")], default="none", max_length=20)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                ("trigger_key", models.CharField(blank=True, max_length=100, null=True)),
                ("is_read", models.BooleanField(default=False)),
                ("read_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("from_user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="notifications_caused", to=settings.AUTH_USER_MODEL)),
                ("recipient", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["recipient", "is_read", "created_at"], name="notification_inbox_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="notification_reference_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(condition=models.Q(("trigger_key__isnull", False)), fields=("recipient", "type", "reference_type", "reference_id", "trigger_key"), name="unique_notification_trigger"),
                ],
            },
        ),
    ]
