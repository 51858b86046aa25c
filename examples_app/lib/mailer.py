import logging

log = logging.getLogger("examples_app.mailer")


def send_receipt(params):
    log.info("receipt queued for order=%s", (params or {}).get("id"))
