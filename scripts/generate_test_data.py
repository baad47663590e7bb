import numpy as np
import cv2
import os

WIDTH = 176
HEIGHT = 144


def generate_base():
    """Background gradient with a rectangle and a circle."""
    img = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
    img[:, :, 0] = np.linspace(40, 200, WIDTH, dtype=np.uint8)[None, :]
    img[:, :, 1] = 80
    img[:, :, 2] = np.linspace(200, 40, HEIGHT, dtype=np.uint8)[:, None]
    cv2.rectangle(img, (10, 10), (40, 40), (255, 255, 0), -1)
    cv2.circle(img, (WIDTH - 30, HEIGHT - 30), 15, (0, 0, 255), -1)
    return img


def generate_edited(base):
    """Same picture with the circle moved and a stroke of text added."""
    img = base.copy()
    cv2.circle(img, (WIDTH - 30, HEIGHT - 30), 15, (0, 80, 200), -1)
    cv2.circle(img, (WIDTH - 50, HEIGHT - 40), 15, (0, 0, 255), -1)
    cv2.putText(img, "v2", (70, 80), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (255, 255, 255), 2)
    return img


def save(filename, img):
    cv2.imwrite(filename, img)
    print(f"Generated {filename}")


def main():
    os.makedirs("test_data", exist_ok=True)
    base = generate_base()

    # 1. Identical pair (100% similar)
    save("test_data/identical_a.png", base)
    save("test_data/identical_b.png", base)

    # 2. Edited pair of the same size
    save("test_data/edited_a.png", base)
    save("test_data/edited_b.png", generate_edited(base))

    # 3. Lossy re-encode: visually equal, pixel-wise different
    save("test_data/lossy_a.png", base)
    save("test_data/lossy_b.jpg", base)

    # 4. Different sizes (padded comparison)
    save("test_data/size_a.png", base)
    save("test_data/size_b.png", base[: HEIGHT // 2, : WIDTH // 2])

    # 5. Transparency: same color, different alpha
    bgra = cv2.cvtColor(base, cv2.COLOR_BGR2BGRA)
    save("test_data/alpha_a.png", bgra)
    half = bgra.copy()
    half[:, :, 3] = 128
    save("test_data/alpha_b.png", half)


if __name__ == "__main__":
    main()
