"""Management command to finish interrupted soft deletes."""

from typing import Any, Final

from django.core.management.base import BaseCommand

from server.apps.files.logic.file_operations import get_file_service
from server.apps.files.logic.trash_operations import reconcile_trash

_DEFAULT_BATCH_SIZE: Final = 1000


class Command(BaseCommand):
    """Move blobs of deleted records that are still in the upload dir."""

    help = 'Move blobs of soft-deleted records into the trash directory'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be moved without moving',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=_DEFAULT_BATCH_SIZE,
            help=f'Max stranded records to move (default: {_DEFAULT_BATCH_SIZE})',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the reconciliation.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        service = get_file_service()

        report = reconcile_trash(
            service.blob_store,
            service.metadata_store,
            options['batch_size'],
            dry_run=dry_run,
        )

        if dry_run:
            for stored_name in report.stranded:
                self.stdout.write(f'Would move: {stored_name}')
        for stored_name in report.failed:
            self.stderr.write(f'Failed to move {stored_name}')

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Would move {len(report.stranded)} files to trash',
                ),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Moved {len(report.moved)} files to trash, '
                    f'{len(report.failed)} failed',
                ),
            )
