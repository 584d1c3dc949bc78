import logging
import sys

from flask import Flask, jsonify, render_template_string

from ec2_metadata_client import MetadataClient
from ec2_report_config import ReportConfig

# Configure logging
logging.basicConfig(
    stream=sys.stdout,
    level=logging.INFO,
    format='%(asctime)s - %(message)s'
)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>EC2 Instance Details</title>
</head>
<body>
    <table>
    <thead>
        <tr><th>Attribute</th><th>Value</th></tr>
    </thead>
    <tbody>
    {%- for reading in readings %}
        <tr><td>{{ reading.label }}</td><td{% if not reading.available %} class="unavailable"{% endif %}>{{ reading.display }}</td></tr>
    {%- endfor %}
    </tbody>
    </table>
</body>
</html>
"""


def create_app(config=None, session=None):
    """
    Builds the metadata report application.

    Args:
        config (ReportConfig, optional): Settings; read from the environment when omitted.
        session (requests.Session, optional): HTTP session used for metadata reads.

    Returns:
        Flask: The configured application.
    """
    config = config or ReportConfig.from_env()

    app = Flask(__name__)
    app.config['REPORT'] = config
    app.extensions['metadata_client'] = MetadataClient.from_config(config, session=session)

    @app.route('/', methods=['GET'])
    def report():
        """
        Renders every instance attribute as an HTML table.
        Unreachable attributes render as empty cells; the page is always served.
        """
        readings = app.extensions['metadata_client'].read_all()
        logging.info(f"Rendering report with {sum(r.available for r in readings)}/{len(readings)} attributes")
        return render_template_string(PAGE_TEMPLATE, readings=readings)

    @app.route('/metadata', methods=['GET'])
    def metadata():
        """
        Returns the same readings as JSON, with null for unavailable attributes.
        """
        readings = app.extensions['metadata_client'].read_all()
        return jsonify({
            "attributes": {r.label: r.value for r in readings},
            "unavailable": [r.label for r in readings if not r.available],
        })

    return app


def main():
    config = ReportConfig.from_env()
    logging.getLogger().setLevel(config.log_level)
    logging.info(f"Serving metadata report from {config.base_url} on {config.host}:{config.port}")

    app = create_app(config)
    app.run(
        host=config.host,
        port=config.port,
        debug=False
    )


if __name__ == '__main__':
    main()
