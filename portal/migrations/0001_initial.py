import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):
    # Initial migration of portal
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Migration",
            fields=[
                ("name", models.CharField(max_length=100, primary_key=True, serialize=False)),
                ("applied", models.IntegerField()),
            ],
            options={
                "db_table": "migration",
            },
        ),
        migrations.CreateModel(
            name="User",
            fields=[
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("id", models.BigAutoField(primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "uid",
                    models.CharField(
                        max_length=128,
                        unique=True,
                        validators=[django.core.validators.RegexValidator("^[\\w.-]+@[\\w.-]+$")],
                        verbose_name="UID (EPPN)",
                    ),
                ),
                ("name", models.CharField(max_length=255, verbose_name="name")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
            ],
            options={
                "db_table": "user",
            },
        ),
    ]
