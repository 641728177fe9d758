from app.errors import BookingAlreadyAssigned, ExtraPartsPending, InvalidEta, NotFound, Unauthorized
from app.schemas import BidCreate, BookingCreate, Envelope, ErrorBody, ExtraPartsCreate, StageAdvance


def test_booking_create_defaults():
    body = BookingCreate(service_type="aircon", asap=True)
    assert body.booking_mode == "saver"
    assert body.urgency == "normal"
    assert body.uploaded_images == []


def test_bid_create_with_materials():
    body = BidCreate(amount=100, eta_minutes=45, included_materials=[{"name": "Gas", "cost": 20}])
    assert body.included_materials[0].quantity == 1


def test_extra_parts_create():
    body = ExtraPartsCreate(parts=[{"name": "Valve", "unit_price": 12.5, "quantity": 2}])
    assert body.parts[0].name == "Valve"


def test_stage_advance_photos_default():
    assert StageAdvance(stage="arriving").photos == {}


def test_error_envelope_shape():
    err = ExtraPartsPending(pending_count=2)
    env = Envelope[dict](error=ErrorBody(**err.to_dict()))
    dumped = env.model_dump()
    assert dumped["data"] is None
    assert dumped["error"]["code"] == "ExtraPartsPending"
    assert dumped["error"]["kind"] == "invariant"
    assert dumped["error"]["details"] == {"pending_count": 2}


def test_error_kinds_map_to_http_status():
    assert InvalidEta().http_status == 400
    assert Unauthorized().http_status == 403
    assert NotFound().http_status == 404
    assert BookingAlreadyAssigned().http_status == 409
    assert ExtraPartsPending().http_status == 409
