def normalize_customer(customer):
    return {
        "id": customer.id,
        "email": customer.email,
        "business_name": customer.business_name,
        "industry": customer.industry,
        "website_url": customer.website_url,
        "is_paying": customer.is_paying,
    }


def normalize_website(entry):
    """Row from the websites overview: a customer plus version stats."""
    data = normalize_customer(entry["customer"])
    data["version_count"] = entry["version_count"]
    data["last_updated"] = entry["last_updated"].isoformat() if entry["last_updated"] else None
    return data
