from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("members", "0001_initial"),
        ("conditions", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Election",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                (
                    "type",
                    models.CharField(
                        choices=[("federal", "Fédérale"), ("section", "Section"), ("other", "Autre")],
                        default="federal",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Brouillon"),
                            ("open", "Ouverte"),
                            ("closed", "Clôturée"),
                            ("published", "Publiée"),
                            ("archived", "Archivée"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("start_at", models.DateTimeField(blank=True, null=True)),
                ("end_at", models.DateTimeField(blank=True, null=True)),
                ("min_seniority", models.IntegerField(default=0)),
                ("total_eligible_voters", models.PositiveIntegerField(default=0)),
                ("total_votes_cast", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "allowed_sections",
                    models.ManyToManyField(blank=True, related_name="elections", to="members.section"),
                ),
                (
                    "candidate_conditions",
                    models.ManyToManyField(blank=True, related_name="candidate_elections", to="conditions.condition"),
                ),
                (
                    "voter_conditions",
                    models.ManyToManyField(blank=True, related_name="voter_elections", to="conditions.condition"),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
