import os
from flask import current_app


def site_path(customer_id):
    publish_folder = current_app.config.get("PUBLISH_FOLDER", "published")
    if not os.path.isabs(publish_folder):
        publish_folder = os.path.join(current_app.instance_path, publish_folder)
    return os.path.join(publish_folder, f"{customer_id}.html")


def publish_site(customer_id, html):
    """
    Writes the approved website to the static publish folder.

    Returns the path written, or None when the write failed. The database
    copy stays authoritative, so a failed write is only logged.
    """
    file_path = site_path(customer_id)

    try:
        os.makedirs(os.path.dirname(file_path), exist_ok=True)
        tmp_path = f"{file_path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            handle.write(html)
        os.replace(tmp_path, file_path)
    except OSError as e:
        current_app.logger.error(f"Failed to publish site for customer {customer_id}: {e}")
        return None

    current_app.logger.info(f"Published site for customer {customer_id} to {file_path}")
    return file_path
