from authcore.infra.jwt.pyjwt_token_codec import JWTTokenCodec, codec_from_config

__all__ = ["JWTTokenCodec", "codec_from_config"]
