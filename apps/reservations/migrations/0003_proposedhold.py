from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('reservations', '0002_seed_rooms_and_rates'),
    ]

    operations = [
        migrations.CreateModel(
            name='ProposedHold',
            fields=[
                ('proposal_id', models.CharField(editable=False, max_length=16, primary_key=True, serialize=False)),
                ('session_id', models.CharField(db_index=True, max_length=64)),
                ('room_ids', models.JSONField(default=list)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('adults', models.PositiveSmallIntegerField(default=0)),
                ('children', models.PositiveSmallIntegerField(default=0)),
                ('toddlers', models.PositiveSmallIntegerField(default=0)),
                ('guest_type', models.CharField(
                    choices=[('utia', 'ÚTIA employee'), ('external', 'External')],
                    default='external',
                    max_length=16,
                )),
                ('created_at', models.DateTimeField()),
                ('expires_at', models.DateTimeField(db_index=True)),
            ],
            options={
                'verbose_name': 'Proposed hold',
                'verbose_name_plural': 'Proposed holds',
                'ordering': ['start_date', 'proposal_id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gt=models.F('start_date')),
                        name='hold_valid_dates',
                    ),
                ],
            },
        ),
    ]
