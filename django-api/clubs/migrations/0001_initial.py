import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="UserRecord",
            fields=[
                ("id", models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(max_length=320, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "users",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="BookClubRecord",
            fields=[
                ("id", models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("owner_id", models.CharField(max_length=64)),
                ("invite_code", models.CharField(editable=False, max_length=6, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "bookclubs",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="BookClubStateRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("book_club_id", models.CharField(max_length=64, unique=True)),
                ("current_book", models.JSONField(blank=True, null=True)),
                ("book_history", models.JSONField(blank=True, default=list)),
                ("next_selector", models.JSONField(blank=True, null=True)),
                ("current_book_version", models.PositiveIntegerField(default=0)),
                ("book_history_version", models.PositiveIntegerField(default=0)),
                ("next_selector_version", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "bookclub_states",
            },
        ),
        migrations.CreateModel(
            name="ClubMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(max_length=64)),
                ("position", models.PositiveIntegerField()),
                ("joined_at", models.DateTimeField(auto_now_add=True)),
                (
                    "club",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="memberships",
                        to="clubs.bookclubrecord",
                    ),
                ),
            ],
            options={
                "db_table": "bookclub_members",
                "ordering": ["position"],
                "indexes": [
                    models.Index(fields=["user_id"], name="bookclub_member_user_idx"),
                    models.Index(fields=["club", "position"], name="bookclub_member_pos_idx"),
                ],
            },
        ),
    ]
