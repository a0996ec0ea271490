from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Conversation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("last_message_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("participant_high", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="conversations_as_high", to=settings.AUTH_USER_MODEL)),
                ("participant_low", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="conversations_as_low", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["participant_high"], name="conversation_high_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("participant_low", "participant_high"), name="unique_conversation_pair"),
                    models.CheckConstraint(condition=models.Q(("participant_low__lt", models.F("participant_high"))), name="conversation_pair_normalised"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("message_type", models.CharField(choices=[("text", "Text"), ("voice", "Voice note"), ("image", "Image"), ("file", "File")], default="text", max_length=20)),
                ("content", models.TextField(blank=True, null=True)),
                ("voice_note_path", models.CharField(blank=True, max_length=500, null=True)),
                ("image_path", models.CharField(blank=True, max_length=500, null=True)),
                ("file_path", models.CharField(blank=True, max_length=500, null=True)),
                ("file_name", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("conversation", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="messages", to="messaging.conversation")),
                ("sender", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="sent_messages", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["conversation", "created_at"], name="message_timeline_idx")],
            },
        ),
    ]
