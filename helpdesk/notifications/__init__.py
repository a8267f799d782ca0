from .webhook import NullNotifier, TicketEvent, TicketNotifier, WebhookNotifier, ticket_to_payload

__all__ = ["NullNotifier", "TicketEvent", "TicketNotifier", "WebhookNotifier", "ticket_to_payload"]
