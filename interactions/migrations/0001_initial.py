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
            name="InteractionFact",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("target_type", models.CharField(choices=[("project", "Project"), ("post", "Post"), ("comment", "Comment")], max_length=20)),
                ("target_id", models.PositiveBigIntegerField()),
                ("kind", models.CharField(choices=[("upvote", "Upvote"), ("bookmark", "Bookmark"), ("reaction", "Reaction")], max_length=20)),
                ("value", models.CharField(blank=True, default="", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("actor", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="interaction_facts", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["target_type", "target_id", "kind"], name="interaction_target_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("actor", "target_type", "target_id", "kind", "value"), name="unique_active_interaction"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReadMarker",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("target_type", models.CharField(max_length=20)),
                ("target_id", models.PositiveBigIntegerField()),
                ("read_through_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="read_markers", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("user", "target_type", "target_id"), name="unique_read_marker"),
                ],
            },
        ),
    ]
