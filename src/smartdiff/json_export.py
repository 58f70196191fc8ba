"""JSON output for --json views."""

import json


def export_json(data, output_path: str | None = None) -> None:
    """Print data as JSON, or write it to output_path when given."""
    text = json.dumps(data, indent=2)
    if output_path:
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(text + '\n')
        print(f"  Exported JSON -> {output_path}")
    else:
        print(text)
