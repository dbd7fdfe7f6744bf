# Generated manually for placement approval locking

from django.db import migrations, models

PLACEMENT_CHOICES = [
    ('Electrical', 'Electrical'),
    ('Manufacturing', 'Manufacturing'),
    ('Automotive', 'Automotive'),
    ('Construction', 'Construction'),
    ('ICT', 'ICT'),
]


class Migration(migrations.Migration):

    dependencies = [
        ('academics', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PlacementIntake',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('department', models.CharField(choices=PLACEMENT_CHOICES, max_length=20)),
                ('academic_year', models.CharField(max_length=9)),
            ],
            options={
                'unique_together': {('department', 'academic_year')},
            },
        ),
    ]
