import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('events', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CarLocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('car_number', models.PositiveIntegerField()),
                ('latitude', models.DecimalField(decimal_places=6, max_digits=10)),
                ('longitude', models.DecimalField(decimal_places=6, max_digits=10)),
                ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='car_locations', to='events.event')),
            ],
            options={
                'db_table': 'car_locations',
                'ordering': ['car_number'],
            },
        ),
        migrations.AddConstraint(
            model_name='carlocation',
            constraint=models.UniqueConstraint(fields=('event', 'car_number'), name='unique_event_car_location'),
        ),
    ]
