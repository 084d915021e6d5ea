from fastapi import APIRouter

EXTENSION_ID = "review"

registration_router = APIRouter()


@registration_router.get("")
async def get_registration():
    """Menu registration for the admin shell that hosts the reviews page."""
    return {
        "registration": {
            "menuItems": [
                {
                    "id": f"{EXTENSION_ID}::reviews",
                    "title": "Product Reviews",
                    "sortOrder": 100
                }
            ],
            "page": {
                "title": "Product Reviews"
            }
        }
    }
