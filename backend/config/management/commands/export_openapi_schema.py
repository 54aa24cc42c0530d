import json
from pathlib import Path

from django.core.management.base import BaseCommand

from config.api import api

DEFAULT_OUTPUT = Path(__file__).resolve().parents[3] / "openapi.json"


class Command(BaseCommand):
    help = "Export the OpenAPI schema of the slug and catalog API to a JSON file"

    def add_arguments(self, parser):
        parser.add_argument(
            "-o",
            "--output",
            default=str(DEFAULT_OUTPUT),
            help="Output file path (default: backend/openapi.json)",
        )
        parser.add_argument(
            "--indent",
            type=int,
            default=2,
            help="JSON indentation (default: 2)",
        )

    def handle(self, *args, **options):
        schema = api.get_openapi_schema()
        output_path = Path(options["output"])
        output_path.write_text(json.dumps(schema, indent=options["indent"]) + "\n")
        self.stdout.write(
            self.style.SUCCESS(
                f"OpenAPI schema with {len(schema['paths'])} paths exported to {output_path}"
            )
        )
