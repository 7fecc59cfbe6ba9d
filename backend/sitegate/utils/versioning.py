from sitegate.extensions import db
from sitegate.models.website_version import WebsiteVersion
from sitegate.domain.invariants.website_version import assert_promotion


def next_version_number(customer_id):
    last = (
        WebsiteVersion.query
        .filter_by(customer_id=customer_id)
        .order_by(WebsiteVersion.version_number.desc())
        .first()
    )
    return (last.version_number + 1) if last else 1


def current_version(customer_id):
    return (
        WebsiteVersion.query
        .filter_by(customer_id=customer_id, is_current=True)
        .first()
    )


def promote_version(customer_id, version_id):
    """
    Make version_id the customer's live version.

    Clears the flag on every other version before setting it, inside the
    caller's transaction.
    """
    target = db.session.get(WebsiteVersion, version_id)
    if target is None or target.customer_id != customer_id:
        raise ValueError("Website version not found for customer")

    live = current_version(customer_id)
    if live is not None and live.id == target.id:
        return target

    assert_promotion(
        current_number=live.version_number if live else None,
        target_number=target.version_number,
    )

    WebsiteVersion.query.filter(
        WebsiteVersion.customer_id == customer_id,
        WebsiteVersion.is_current.is_(True),
    ).update({WebsiteVersion.is_current: False}, synchronize_session=False)
    db.session.flush()

    WebsiteVersion.query.filter(
        WebsiteVersion.id == target.id,
    ).update({WebsiteVersion.is_current: True}, synchronize_session=False)

    return target
