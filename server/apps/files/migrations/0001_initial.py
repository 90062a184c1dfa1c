from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='FileRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('original_name', models.CharField(help_text='Display name supplied by the client', max_length=255)),
                ('stored_name', models.CharField(help_text='Blob key: {yyyyMMddHHmmss}_{original_name}', max_length=300, unique=True)),
                ('size_bytes', models.BigIntegerField(help_text='Bytes actually persisted')),
                ('path', models.CharField(help_text='Blob location at upload time', max_length=1024)),
                ('uploaded_at', models.DateTimeField(db_index=True)),
                ('deleted', models.BooleanField(db_index=True, default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'File record',
                'verbose_name_plural': 'File records',
                'ordering': ['-uploaded_at', '-id'],
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            models.Q(deleted=False, deleted_at__isnull=True) |
                            models.Q(deleted=True, deleted_at__isnull=False)
                        ),
                        name='files_deleted_at_matches_flag',
                    ),
                ],
            },
        ),
    ]
