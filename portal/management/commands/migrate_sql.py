from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from portal import sql_migrations


class Command(BaseCommand):
    help = "Applies new plain SQL migrations and records them in the `migration` table."

    def add_arguments(self, parser):
        parser.add_argument("--path", help="Directory of the SQL migration files (default: SQL_MIGRATIONS_DIR).")
        parser.add_argument("--noinput", "--no-input", action="store_false", dest="interactive",
                            help="Apply without asking for confirmation.")
        parser.add_argument("--create", metavar="NAME", help="Create a new empty migration file instead.")

    # ---------- helpers ----------
    def _confirm(self, question):
        answer = input(f"{question} [y/N] ")
        return answer.strip().lower() in ("y", "yes")

    def _create(self, directory, name):
        try:
            path = sql_migrations.create_migration(directory, name)
        except (ValueError, FileExistsError) as exc:
            raise CommandError(str(exc))
        self.stdout.write(self.style.SUCCESS(f"Migration {path} created."))

    # ---------- handle ----------
    def handle(self, *args, **options):
        directory = options["path"] or settings.SQL_MIGRATIONS_DIR
        verbosity = options["verbosity"]

        if options["create"]:
            return self._create(directory, options["create"])

        new = sql_migrations.pending(directory)
        if not new:
            if verbosity:
                self.stdout.write("Everything is up to date!")
            return

        if verbosity:
            self.stdout.write(f"There are {len(new)} new updates:")
            for path in new:
                self.stdout.write(f"  - {path}")
        if options["interactive"] and not self._confirm("Apply all the new migrations?"):
            return

        applied = []
        for path in new:
            if verbosity > 1:
                self.stdout.write(f"Applying {path.stem} from {path}")
            try:
                applied.append(sql_migrations.apply_file(path, verbosity=verbosity, stdout=self.stdout))
            except sql_migrations.MigrationError as exc:
                if applied and verbosity:
                    self.stdout.write(f"{len(applied)} migration(s) applied before the failure.")
                raise CommandError(str(exc)) from exc

        if verbosity:
            count = len(applied)
            self.stdout.write(self.style.SUCCESS(
                f"{count} migration{'s were' if count > 1 else ' was'} applied."
            ))
