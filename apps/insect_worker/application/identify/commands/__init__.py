from insect_worker.application.identify.commands.identify_insect import (
    INSECTS_COLLECTION,
    IdentifyInsectCommand,
)

__all__ = ["INSECTS_COLLECTION", "IdentifyInsectCommand"]
