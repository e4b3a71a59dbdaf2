from insect_jobs.application.codec.payload_codec import PayloadCodec

__all__ = ["PayloadCodec"]
