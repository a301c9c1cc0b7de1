"""
Quick API smoke test against a running service
"""

import httpx
import asyncio


async def test_api():
    """Test Sahayak API endpoints"""

    base_url = "http://localhost:8001"

    print("Testing Sahayak API...")
    print("=" * 50)

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Test health
        print("\n1. Health check...")
        response = await client.get(f"{base_url}/health")
        print(f"Status: {response.status_code}")
        print(f"Response: {response.json()}")

        # Synchronous classification, nothing stored
        print("\n2. Verify endpoint...")
        response = await client.post(
            f"{base_url}/verify",
            json={
                "message": "URGENT!!! Send money to help victims!!! Western Union only!!!",
                "location": "Unknown area"
            }
        )
        print(f"Status: {response.status_code}")
        print(f"Response: {response.json()}")

        # Submit a report
        print("\n3. Submit report...")
        response = await client.post(
            f"{base_url}/reports",
            json={
                "message": "Family of 4 trapped on 2nd floor due to rising flood water. Need rescue boat.",
                "location": "45 River Street, near old market",
                "contact": "+1-555-0123"
            }
        )
        print(f"Status: {response.status_code}")
        data = response.json()
        print(f"Report ID: {data.get('id')} ({data.get('classification')})")

        # Poll until the background classification lands
        if data.get('id'):
            report_id = data['id']
            print(f"\n4. Polling classification for {report_id}...")

            for i in range(15):
                await asyncio.sleep(2)
                response = await client.get(f"{base_url}/reports/{report_id}")
                report = response.json()

                if report['classification'] != 'Pending':
                    print(f"Classified! {report['classification']} ({report['confidence']:.2f}): {report['rationale']}")
                    break
                else:
                    print(f"  [{i+1}/15] Status: {report['classification']}")

        # Dashboard aggregates
        print("\n5. Stats...")
        response = await client.get(f"{base_url}/stats")
        stats = response.json()
        print(f"Total: {stats['total']}, genuine rate: {stats['genuine_rate']}%, scam rate: {stats['scam_rate']}%")

    print("\n" + "=" * 50)
    print("Test completed")


if __name__ == "__main__":
    asyncio.run(test_api())
