from __future__ import annotations

import argparse
import time
from pathlib import Path

from adapters.s3.map_store import S3MapStore
from adapters.s3.s3_client import create_s3_client
from domain.services.map_codec import decode_map_document, encode_map_document


def wait_for_s3(client, timeout: int = 30) -> None:
    deadline = time.time() + timeout
    while True:
        try:
            client.list_buckets()
            return
        except Exception:
            if time.time() >= deadline:
                raise
            time.sleep(1)


def ensure_bucket(client, bucket: str, region: str | None) -> None:
    try:
        client.head_bucket(Bucket=bucket)
        return
    except Exception:
        pass
    params = {"Bucket": bucket}
    if region and region != "us-east-1":
        params["CreateBucketConfiguration"] = {"LocationConstraint": region}
    client.create_bucket(**params)


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed S3 bucket with a map document.")
    parser.add_argument("--endpoint", required=True)
    parser.add_argument("--access-key", required=True)
    parser.add_argument("--secret-key", required=True)
    parser.add_argument("--bucket", required=True)
    parser.add_argument("--key", default="map/map_info.json")
    parser.add_argument("--region", default="us-east-1")
    parser.add_argument("--source", default="examples/map/map_info.json")
    parser.add_argument("--path-style", action="store_true")
    args = parser.parse_args()

    source = Path(args.source)
    if not source.is_file():
        raise SystemExit(f"Map document not found: {source}")
    # Re-encode so only documents that pass validation reach the bucket.
    document = decode_map_document(source.read_text(encoding="utf-8"))

    client = create_s3_client(
        region=args.region,
        endpoint_url=args.endpoint,
        access_key_id=args.access_key,
        secret_access_key=args.secret_key,
        use_path_style=args.path_style,
    )
    wait_for_s3(client)
    ensure_bucket(client, args.bucket, args.region)

    store = S3MapStore(client, args.bucket, args.key)
    location = store.save_text(encode_map_document(document))
    print(f"Uploaded {source} ({len(document.nodes)} nodes) -> {location}")


if __name__ == "__main__":
    main()
