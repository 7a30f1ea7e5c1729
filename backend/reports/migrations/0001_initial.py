from django.db import migrations, models
import django.core.serializers.json
import django.utils.timezone
import reports.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ReportRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("report_type", models.CharField(choices=[("Sales", "Sales Report"), ("Inventory", "Inventory Report"), ("Financial", "Financial Report"), ("Custom", "Custom Report")], max_length=20)),
                ("format", models.CharField(choices=[("View", "View"), ("PDF", "PDF"), ("Excel", "Excel"), ("CSV", "CSV")], default="View", max_length=10)),
                ("title", models.CharField(max_length=200)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("created_by", models.CharField(blank=True, default="", max_length=150)),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("parameters", models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ("parameters_hash", models.CharField(blank=True, default="", max_length=64)),
                ("row_count", models.IntegerField(default=0)),
                ("total_amount", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("status", models.CharField(choices=[("Generated", "Generated"), ("Failed", "Failed"), ("Expired", "Expired")], default="Generated", max_length=20)),
                ("expires_at", models.DateTimeField(default=reports.models.default_expiry)),
                ("file_name", models.CharField(blank=True, default="", max_length=255)),
                ("file_size", models.BigIntegerField(blank=True, null=True)),
                ("view_data", models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, help_text="Report payload for JSON views", null=True)),
            ],
            options={
                "verbose_name": "Report Record",
                "verbose_name_plural": "Report Records",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["report_type", "created_at"], name="reports_rec_type_created_idx"),
                    models.Index(fields=["status", "expires_at"], name="reports_rec_status_exp_idx"),
                ],
            },
        ),
    ]
