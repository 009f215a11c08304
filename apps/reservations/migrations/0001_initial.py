from decimal import Decimal

import django.core.serializers.json
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Room',
            fields=[
                ('id', models.CharField(max_length=8, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=64)),
                ('bed_count', models.PositiveSmallIntegerField()),
            ],
            options={
                'verbose_name': 'Room',
                'verbose_name_plural': 'Rooms',
                'ordering': ['id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(bed_count__gte=1),
                        name='room_has_beds',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Booking',
            fields=[
                ('id', models.CharField(editable=False, max_length=16, primary_key=True, serialize=False)),
                ('group_id', models.CharField(blank=True, db_index=True, max_length=16, null=True)),
                ('room_ids', models.JSONField(default=list)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('per_room_dates', models.JSONField(blank=True, default=dict)),
                ('per_room_guests', models.JSONField(blank=True, default=dict)),
                ('guest_names', models.JSONField(blank=True, default=list)),
                ('guest_type', models.CharField(
                    choices=[('utia', 'ÚTIA employee'), ('external', 'External')],
                    default='external',
                    max_length=16,
                )),
                ('adults', models.PositiveSmallIntegerField(default=0)),
                ('children', models.PositiveSmallIntegerField(default=0)),
                ('toddlers', models.PositiveSmallIntegerField(default=0)),
                ('is_bulk_booking', models.BooleanField(default=False)),
                ('paid', models.BooleanField(default=False)),
                ('total_price', models.DecimalField(
                    decimal_places=2,
                    default=Decimal('0.00'),
                    help_text='Price charged at booking time; shown prices are recomputed.',
                    max_digits=12,
                )),
                ('name', models.CharField(blank=True, max_length=255)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField()),
                ('updated_at', models.DateTimeField()),
            ],
            options={
                'verbose_name': 'Booking',
                'verbose_name_plural': 'Bookings',
                'ordering': ['start_date', 'id'],
                'indexes': [
                    models.Index(fields=['start_date', 'end_date'], name='reservation_dates_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gt=models.F('start_date')),
                        name='reservation_valid_dates',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='Blockage',
            fields=[
                ('blockage_id', models.CharField(editable=False, max_length=16, primary_key=True, serialize=False)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('reason', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('rooms', models.ManyToManyField(blank=True, related_name='blockages', to='reservations.room')),
            ],
            options={
                'verbose_name': 'Blockage',
                'verbose_name_plural': 'Blockages',
                'ordering': ['start_date', 'blockage_id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gt=models.F('start_date')),
                        name='blockage_valid_dates',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReservationSetting',
            fields=[
                ('key', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('value', models.JSONField(encoder=django.core.serializers.json.DjangoJSONEncoder)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Reservation setting',
                'verbose_name_plural': 'Reservation settings',
            },
        ),
    ]
