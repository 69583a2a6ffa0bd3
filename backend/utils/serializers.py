from bson import ObjectId

from utils.money import from_minor_units

# stored as integer minor units, exposed as major units
MONEY_FIELDS = {"price", "total_amount", "wallet_balance", "amount", "total"}


def serialize_doc(doc: dict) -> dict:
    if not doc:
        return doc

    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = doc.pop("_id")

    for k, v in doc.items():
        if isinstance(v, ObjectId):
            doc[k] = str(v)
        elif k in MONEY_FIELDS and isinstance(v, int):
            doc[k] = from_minor_units(v)
        elif isinstance(v, list):
            doc[k] = [serialize_doc(i) if isinstance(i, dict) else i for i in v]
    return doc


def serialize_docs(docs):
    return [serialize_doc(d) for d in docs]
