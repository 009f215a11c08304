from django.conf import settings
from django.db import migrations


def seed_rooms_and_rates(apps, schema_editor):
    Room = apps.get_model('reservations', 'Room')
    ReservationSetting = apps.get_model('reservations', 'ReservationSetting')
    config = settings.RESERVATIONS

    for room in config['DEFAULT_ROOMS']:
        Room.objects.update_or_create(
            id=room['id'],
            defaults={'name': room['name'], 'bed_count': room['bed_count']},
        )

    for key, value in config['DEFAULT_RATES'].items():
        ReservationSetting.objects.get_or_create(key=key, defaults={'value': value})


def remove_rooms_and_rates(apps, schema_editor):
    Room = apps.get_model('reservations', 'Room')
    ReservationSetting = apps.get_model('reservations', 'ReservationSetting')
    config = settings.RESERVATIONS

    Room.objects.filter(id__in=[room['id'] for room in config['DEFAULT_ROOMS']]).delete()
    ReservationSetting.objects.filter(key__in=list(config['DEFAULT_RATES'])).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('reservations', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_rooms_and_rates, remove_rooms_and_rates),
    ]
