class ValidationError(Exception):
    pass


class PermissionDenied(Exception):
    pass


class NotFoundException(Exception):
    def __init__(self, resource: str, identifier: str, status_code: int = 404):
        super().__init__(resource, identifier, status_code)
        self.resource = resource
        self.identifier = identifier
        self.status_code = status_code

    def __str__(self):
        return f"{self.resource} '{self.identifier}' not found"


class RoomNotFound(NotFoundException):
    def __init__(self, room_id: str):
        super().__init__("room", room_id, 404)


class ReservationNotFound(NotFoundException):
    def __init__(self, reservation_id: str):
        super().__init__("reservation", reservation_id, 404)


class BillingRecordNotFound(NotFoundException):
    def __init__(self, record_id: str):
        super().__init__("billing record", record_id, 404)


class RoomUnavailable(Exception):
    pass


class NoAvailableRooms(RoomUnavailable):
    pass


class InvalidStateTransition(Exception):
    def __init__(self, reservation_id: str, current, target=None, detail: str = None):
        super().__init__(reservation_id, current, target, detail)
        self.reservation_id = reservation_id
        self.current = current
        self.target = target
        self.detail = detail

    def __str__(self):
        current = getattr(self.current, "value", self.current)
        if self.detail:
            return f"reservation '{self.reservation_id}' ({current}): {self.detail}"
        target = getattr(self.target, "value", self.target)
        return (
            f"reservation '{self.reservation_id}' cannot move from "
            f"{current} to {target}"
        )


class PaymentError(Exception):
    pass


class SweepAlreadyRunning(Exception):
    pass
