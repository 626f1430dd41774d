import unittest

from fansite.link_converter import convert_to_direct_download_link, is_cloud_storage_link


class LinkConverterTests(unittest.TestCase):
    def test_onedrive_query_is_replaced(self):
        self.assertEqual(
            convert_to_direct_download_link("https://onedrive.live.com/abc?x=1"),
            "https://onedrive.live.com/abc?download=1",
        )

    def test_sharepoint_link(self):
        self.assertEqual(
            convert_to_direct_download_link(
                "https://contoso.sharepoint.com/:u:/g/file?e=abc"
            ),
            "https://contoso.sharepoint.com/:u:/g/file?download=1",
        )

    def test_short_link_keeps_its_query(self):
        self.assertEqual(
            convert_to_direct_download_link("https://1drv.ms/u/s!abc"),
            "https://1drv.ms/u/s!abc?download=1",
        )
        self.assertEqual(
            convert_to_direct_download_link("https://1drv.ms/u/s!abc?e=xyz"),
            "https://1drv.ms/u/s!abc?e=xyz&download=1",
        )

    def test_fragment_stays_after_the_marker(self):
        self.assertEqual(
            convert_to_direct_download_link("https://1drv.ms/u/s!abc#frag"),
            "https://1drv.ms/u/s!abc?download=1#frag",
        )
        self.assertEqual(
            convert_to_direct_download_link("https://onedrive.live.com/abc?x=1#frag"),
            "https://onedrive.live.com/abc?download=1#frag",
        )

    def test_unrelated_url_passes_through(self):
        url = "https://example.com/file.zip"
        self.assertFalse(is_cloud_storage_link(url))
        self.assertEqual(convert_to_direct_download_link(url), url)

    def test_conversion_is_idempotent(self):
        for url in (
            "https://1drv.ms/u/s!abc",
            "https://1drv.ms/u/s!abc?e=xyz",
            "https://1drv.ms/u/s!abc#frag",
            "https://1drv.ms/u/s!abc?e=xyz#frag",
            "https://onedrive.live.com/abc?x=1#frag",
            "https://onedrive.live.com/abc?x=1&y=2",
            "https://contoso.sharepoint.com/file",
            "https://example.com/file.zip",
        ):
            with self.subTest(url=url):
                once = convert_to_direct_download_link(url)
                self.assertEqual(convert_to_direct_download_link(once), once)


if __name__ == "__main__":
    unittest.main()
