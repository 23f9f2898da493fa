from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='CurrentFix',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('latitude', models.FloatField(help_text='Latitude in decimal degrees (-90 to +90)')),
                ('longitude', models.FloatField(help_text='Longitude in decimal degrees (-180 to +180)')),
                ('accuracy', models.FloatField(blank=True, help_text="Radius of the device's confidence circle in meters", null=True)),
                ('active', models.BooleanField(default=True, help_text='Whether the driver is currently broadcasting')),
                ('timestamp', models.DateTimeField(help_text='When the fix was captured')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='When the server last overwrote this record')),
            ],
            options={
                'verbose_name': 'Current fix',
                'verbose_name_plural': 'Current fix',
            },
        ),
        migrations.CreateModel(
            name='SantaTourRoute',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('area', models.CharField(max_length=200)),
                ('duration', models.CharField(blank=True, default='', help_text="Free-form duration, e.g. '2 hours'", max_length=50)),
                ('stops_count', models.PositiveIntegerField(default=0)),
                ('notes', models.TextField(blank=True, default='')),
                ('map_data', models.TextField(blank=True, default='', help_text='Serialized route geometry from the route planner')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Route',
                'verbose_name_plural': 'Routes',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='SantaTourSchedule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('night_number', models.PositiveIntegerField()),
                ('date', models.DateField()),
                ('santa_member', models.IntegerField(blank=True, null=True)),
                ('driver_member', models.IntegerField(blank=True, null=True)),
                ('helper1_member', models.IntegerField(blank=True, null=True)),
                ('helper2_member', models.IntegerField(blank=True, null=True)),
                ('start_time', models.CharField(default='18:00', max_length=5)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('route', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='schedules', to='santa_tour.santatourroute')),
            ],
            options={
                'verbose_name': 'Schedule',
                'verbose_name_plural': 'Schedules',
                'ordering': ['date', 'night_number'],
            },
        ),
    ]
