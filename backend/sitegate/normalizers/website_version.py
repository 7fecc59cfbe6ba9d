def normalize_version(version, include_html=False):
    data = {
        "id": version.id,
        "customer_id": version.customer_id,
        "version_number": version.version_number,
        "change_description": version.change_description,
        "request_id": version.request_id,
        "is_current": version.is_current,
        "created_at": version.created_at.isoformat(),
    }

    if include_html:
        data["html_content"] = version.html_content

    return data
